"""Project-level configuration and scaffolding."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "display_precision": 10,
    "strict_definitions": True,
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load project configuration from ``varcalc.yaml``, with defaults.

    Args:
        project_dir: Root of the varcalc project.

    Returns:
        Merged configuration dict.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = project_dir / "varcalc.yaml"
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping")
        config.update(user_config)
    return config


DEMO_WORKBOOK = """\
# varcalc workbook spec v1
version: 1

variables:
  - name: BASIC
    kind: constant
    expression: "10000"
  - name: DA
    kind: constant
    expression: "2000"
  - name: HRA
    kind: constant
    expression: "3000"
  - name: GROSS
    kind: dynamic
    expression: BASIC + DA + HRA
  - name: PF
    kind: constant
    expression: "1200"
  - name: TAX
    kind: constant
    expression: "500"
  - name: DEDUCTIONS
    kind: dynamic
    expression: PF + TAX

formulas:
  - name: NET_SALARY
    expression: GROSS - DEDUCTIONS
  - name: MONTHLY_SALARY
    expression: "(GROSS / 30) * {{#num_of_days}}"
  - name: BONUS
    expression: "GROSS * {{#bonus_percentage}} / 100"
"""

DEMO_VARCALC_CONFIG = """\
# varcalc project configuration
display_precision: 10
strict_definitions: true
logging_enabled: true
# logging_fsync: false
"""


def scaffold_project(target_dir: Path) -> Path:
    """Create a new demo project (payroll variables and formulas).

    Args:
        target_dir: Directory to create (must not already contain workbook.yaml).

    Returns:
        Path to the created project directory.
    """
    target_dir = target_dir.resolve()
    target_dir.mkdir(parents=True, exist_ok=True)

    if (target_dir / "workbook.yaml").exists():
        raise FileExistsError(f"workbook.yaml already exists in {target_dir}")

    (target_dir / "workbook.yaml").write_text(DEMO_WORKBOOK)
    (target_dir / "varcalc.yaml").write_text(DEMO_VARCALC_CONFIG)
    (target_dir / "logs").mkdir(exist_ok=True)

    return target_dir
