#!/usr/bin/env python3
"""
pnmlsort Configuration

Options consumed by the canonicalization engine, and their loading from
the environment.

Usage:
    from pnmlsort.config import SortOptions

    options = SortOptions.from_env()
    options = options.model_copy(update={"sort_on_id": True})
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)

ENV_PREFIX = "PNMLSORT_"
DEBUG_ENV = "PNMLSORT_DEBUG"
QUEUE_SIZE_ENV = "PNMLSORT_QUEUE_SIZE"

_TRUTHY = {"true", "1", "yes", "on"}

# Environment variable suffix -> SortOptions field
_ENV_FIELDS = {
    "SORT_ON_ID": "sort_on_id",
    "EXCLUDE_PLACES": "exclude_places",
    "EXCLUDE_TRANS": "exclude_transitions",
    "EXCLUDE_ARCS": "exclude_arcs",
    "OUTPUT_MARKINGS": "output_markings",
    "OUTPUT_INSCRIPTIONS": "output_inscriptions",
}


class SortOptions(BaseModel):
    """
    Rendering options for one canonicalization run.

    Attributes:
        sort_on_id: Merge named and unnamed nodes and order them by id
        exclude_places: Suppress PLACES blocks
        exclude_transitions: Suppress TRANSITIONS blocks
        exclude_arcs: Suppress ARCS blocks
        output_markings: Append non-default place markings (P/T nets only)
        output_inscriptions: Append non-default arc inscriptions (P/T nets only)
        debug: Log stack traces of failures
        queue_size: Output channel capacity, 0 for unbounded
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    sort_on_id: bool = False
    exclude_places: bool = False
    exclude_transitions: bool = False
    exclude_arcs: bool = False
    output_markings: bool = True
    output_inscriptions: bool = True
    debug: bool = False
    queue_size: int = Field(default=0, ge=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "SortOptions":
        """
        Build options from PNMLSORT_* environment variables.

        Unset variables keep their defaults; each one is reported so users
        learn which knobs exist. Keyword overrides win over the environment.
        """
        if environ is None:
            environ = os.environ

        values: Dict[str, Any] = {}
        for suffix, field_name in _ENV_FIELDS.items():
            var = ENV_PREFIX + suffix
            raw = environ.get(var)
            if raw is None:
                default = cls.model_fields[field_name].default
                logger.info(f"{var} is not set. Default is {str(default).lower()}.")
                continue
            values[field_name] = parse_bool(raw)
            if values[field_name] != cls.model_fields[field_name].default:
                logger.warning(f"Option {var} enabled: {values[field_name]}.")

        debug = environ.get(DEBUG_ENV)
        if debug is not None:
            values["debug"] = parse_bool(debug)

        queue_size = environ.get(QUEUE_SIZE_ENV)
        if queue_size is not None:
            values["queue_size"] = queue_size

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def parse_bool(raw: str) -> bool:
    """Interpret an environment string as a boolean flag."""
    return raw.strip().lower() in _TRUTHY
