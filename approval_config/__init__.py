"""
approval_config -- workflow definitions from YAML.

Responsibility:
    Public entrypoint for loading workflow definitions from YAML files and
    validating them with the same rules ``WorkflowDefinitionService``
    applies on save.

Architecture position:
    Configuration -- sits above ``approval_kernel.domain`` and is used by
    the kernel services (validation) and the ``load_workflows`` script.

Failure modes:
    - ``FileNotFoundError`` / ``yaml.YAMLError`` / ``ValueError`` from the
      loader for unreadable or malformed files.
    - ``WorkflowConfigurationError`` when ``validate=True`` and a
      definition fails validation.
"""

from __future__ import annotations

import logging
from pathlib import Path

from approval_config.loader import parse_workflow_file, workflow_files
from approval_config.validator import WorkflowValidationResult, validate_definition
from approval_kernel.domain.workflow import WorkflowDefinition
from approval_kernel.exceptions import WorkflowConfigurationError

_logger = logging.getLogger("approval_kernel.config")

# Bundled sample workflows
DEFAULT_SETS_DIR = Path(__file__).parent / "sets"


def load_workflow_definitions(
    path: Path | str = DEFAULT_SETS_DIR,
    validate: bool = True,
) -> list[WorkflowDefinition]:
    """
    Load every workflow definition under ``path`` (a file or a directory).

    Postconditions:
        - Definitions are returned in file order, files sorted by name.
        - With ``validate=True`` every returned definition is valid.
    """
    definitions: list[WorkflowDefinition] = []
    for file_path in workflow_files(Path(path)):
        parsed = parse_workflow_file(file_path)
        _logger.debug(
            "workflow_file_loaded",
            extra={"path": str(file_path), "workflow_count": len(parsed)},
        )
        definitions.extend(parsed)

    if validate:
        for definition in definitions:
            result = validate_definition(definition)
            if not result.is_valid:
                raise WorkflowConfigurationError(definition.name, result.errors)

    _logger.info(
        "workflow_definitions_loaded",
        extra={"path": str(path), "workflow_count": len(definitions)},
    )
    return definitions


__all__ = [
    "DEFAULT_SETS_DIR",
    "WorkflowValidationResult",
    "load_workflow_definitions",
    "validate_definition",
]
