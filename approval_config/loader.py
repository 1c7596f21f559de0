"""
Workflow Loader (``approval_config.loader``).

Responsibility
--------------
Loads YAML workflow files and parses them into ``WorkflowDefinition``
instances.  Used by the ``load_workflows`` script and by tests; runtime
code reads definitions from the database, never from YAML.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends only on kernel
domain types and PyYAML.

File format
-----------
A file holds a top-level ``workflows`` list (or a single workflow
mapping).  ``conditions`` may be written in the flat form::

    conditions:
      min_amount: 1000
      currencies: [USD, EUR]

or as a list of tagged conditions (``kind: amount_range`` ...), the same
encoding stored in the ``approval_workflows.conditions`` column.

A workflow without ``workflow_id`` gets a stable UUID derived from its
target type and name, so reloading a file updates rows in place.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Bad values (amounts, UUIDs, unknown condition keys)  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from uuid import NAMESPACE_URL, UUID, uuid5

import yaml

from approval_kernel.domain.workflow import (
    StepTemplate,
    TriggerConditions,
    WorkflowDefinition,
    condition_from_json,
    step_template_from_json,
)

_FLAT_CONDITION_KEYS = frozenset({
    "min_amount", "max_amount", "currencies", "roles", "departments",
})


def load_yaml_file(path: Path) -> dict[str, Any] | list[Any]:
    """
    Load a single YAML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def stable_workflow_id(target_type: str, name: str) -> UUID:
    """Deterministic id for a workflow declared without one."""
    return uuid5(NAMESPACE_URL, f"approval-workflow:{target_type.lower()}:{name}")


def parse_conditions(data: Any) -> TriggerConditions:
    """Parse the flat mapping form or the tagged list form."""
    if not data:
        return TriggerConditions()
    if isinstance(data, list):
        return TriggerConditions(conditions=tuple(condition_from_json(c) for c in data))
    if isinstance(data, dict):
        unknown = set(data) - _FLAT_CONDITION_KEYS
        if unknown:
            raise ValueError(f"Unknown condition keys: {sorted(unknown)}")
        return TriggerConditions.of(
            min_amount=data.get("min_amount"),
            max_amount=data.get("max_amount"),
            currencies=data.get("currencies"),
            roles=data.get("roles"),
            departments=data.get("departments"),
        )
    raise ValueError(f"conditions must be a mapping or a list, got {type(data).__name__}")


def parse_step(data: Any) -> StepTemplate:
    """A step is either a bare name or a mapping with ``name``."""
    if isinstance(data, str):
        return StepTemplate(name=data)
    return step_template_from_json(data)


def parse_workflow(data: dict[str, Any]) -> WorkflowDefinition:
    """
    Parse one workflow mapping.

    Raises:
        KeyError: if ``name`` or ``target_type`` is missing.
        ValueError: on malformed ids, amounts or conditions.
    """
    name = data["name"]
    target_type = str(data["target_type"]).lower()
    raw_id = data.get("workflow_id")
    workflow_id = UUID(str(raw_id)) if raw_id else stable_workflow_id(target_type, name)

    return WorkflowDefinition(
        workflow_id=workflow_id,
        name=name,
        target_type=target_type,
        description=data.get("description") or "",
        priority=int(data.get("priority", 100)),
        is_active=bool(data.get("is_active", True)),
        steps=tuple(parse_step(s) for s in data.get("steps") or ()),
        conditions=parse_conditions(data.get("conditions")),
    )


def parse_workflow_file(path: Path) -> list[WorkflowDefinition]:
    """Parse every workflow declared in one YAML file."""
    content = load_yaml_file(path)
    if isinstance(content, dict) and "workflows" in content:
        items = content["workflows"] or []
    elif isinstance(content, dict) and content:
        items = [content]
    elif isinstance(content, list):
        items = content
    else:
        items = []
    return [parse_workflow(item) for item in items]


def workflow_files(path: Path) -> list[Path]:
    """A single file, or every ``*.yaml`` / ``*.yml`` in a directory, sorted."""
    if path.is_dir():
        return sorted(
            p for p in path.iterdir()
            if p.is_file() and p.suffix in (".yaml", ".yml")
        )
    if not path.exists():
        raise FileNotFoundError(path)
    return [path]
