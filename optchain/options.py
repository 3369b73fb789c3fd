"""
Rule Options

The rule accepts a single options object:

  • excludeIdentifiers   — extra root names treated as never-null
  • excludeChainMethods  — extra property names treated as already-safe
                           chain endpoints

Both lists are merged with the built-in defaults.  Unknown keys are
rejected.  Options may arrive as a mapping, an ESLint-style options list
(first element is the object), a JSON string, or nothing at all.
"""

import json
import logging
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class RuleConfigurationError(ValueError):
    """Options do not match the rule's schema."""


class RuleOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    exclude_identifiers: List[str] = Field(default_factory=list, alias="excludeIdentifiers")
    exclude_chain_methods: List[str] = Field(default_factory=list, alias="excludeChainMethods")


def parse_options(raw: Any = None) -> RuleOptions:
    """Normalise any accepted options form into a RuleOptions instance."""
    if raw is None or isinstance(raw, RuleOptions):
        return raw or RuleOptions()

    if isinstance(raw, str):
        if not raw.strip():
            return RuleOptions()
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise RuleConfigurationError(f"Options are not valid JSON: {e}") from e

    # ESLint passes rule options as a list after the severity was stripped
    if isinstance(raw, (list, tuple)):
        if len(raw) > 1:
            raise RuleConfigurationError(
                f"Expected at most one options object, got {len(raw)} entries")
        raw = raw[0] if raw else {}

    if not isinstance(raw, dict):
        raise RuleConfigurationError(
            f"Options must be an object, got {type(raw).__name__}")

    try:
        options = RuleOptions.model_validate(raw)
    except ValidationError as e:
        raise RuleConfigurationError(f"Invalid rule options: {e}") from e

    logger.debug("Rule options: %d extra identifiers, %d extra chain methods",
                 len(options.exclude_identifiers), len(options.exclude_chain_methods))
    return options


def options_schema() -> Dict[str, Any]:
    """JSON schema of the options object, keyed by the public option names."""
    return RuleOptions.model_json_schema(by_alias=True)
