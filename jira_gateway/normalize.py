"""Custom field value normalization.

Jira returns custom field values in many wire shapes: plain scalars, user
references, select options wrapped as ``{id, self, value}``, cascading selects
with a nested ``child``, status-like ``{name}`` objects and Service Management
SLA aggregates. ``extract_field_value`` reduces all of them to a small set of
plain shapes.

Branches are tried in a fixed order and the first match wins:

    1. None                                  -> None
    2. list                                  -> each element extracted
    3. {accountId, ...}                      -> {accountId, displayName, emailAddress}
    4. {value, ...} with option-with-child   -> {parent, child?}
    5. {ongoingCycle | completedCycles, ...} -> SLA summary
    6. {value, ...}                          -> value
    7. {name, ...}                           -> name
    8. anything else                         -> unchanged

Extraction never raises for data-shape reasons; unknown shapes fall through
to branch 8.
"""

import logging
from typing import Any, Mapping, Protocol

from jira_gateway.fields import CUSTOM_FIELD_PREFIX, FieldMetadata


logger = logging.getLogger(__name__)

CASCADING_SELECT_TYPE = "option-with-child"

USER_KEYS = ("accountId", "displayName", "emailAddress")
SLA_SUMMARY_KEYS = ("breached", "paused", "remainingTime", "elapsedTime", "goalDuration")
CYCLE_TIMESTAMP_KEYS = ("startTime", "stopTime", "breachedTime")


class FieldLookup(Protocol):
    def get(self, field_id: str) -> FieldMetadata | None: ...


def extract_field_value(value: Any, metadata: FieldMetadata | None = None) -> Any:
    """Normalize one raw custom field value. See the module docstring for the branch order."""
    if value is None:
        return value

    if isinstance(value, list):
        return [extract_field_value(item, metadata) for item in value]

    if isinstance(value, dict):
        if "accountId" in value:
            return extract_user(value)

        # Metadata-gated: without a cached type a cascading select unwraps to its parent (branch 6)
        if metadata is not None and metadata.type == CASCADING_SELECT_TYPE and "value" in value:
            return extract_cascading_value(value)

        if "ongoingCycle" in value or "completedCycles" in value:
            return extract_sla(value)

        if "value" in value:
            return value["value"]

        if "name" in value:
            return value["name"]

    return value


def extract_user(value: Mapping[str, Any] | None) -> dict | None:
    """Project a user reference down to its identifying keys, dropping self/avatarUrls/etc."""
    if not isinstance(value, Mapping):
        return None
    return {key: value[key] for key in USER_KEYS if key in value}


def extract_cascading_value(value: Mapping[str, Any]) -> dict:
    """``{value: "P", child: {value: "C"}}`` -> ``{parent: "P", child: "C"}``.

    ``child`` is left out entirely when there is no nested child value.
    """
    result = {"parent": value["value"]}
    child = value.get("child")
    if isinstance(child, dict) and "value" in child:
        result["child"] = child["value"]
    return result


def _flatten_cycle(cycle: Any) -> Any:
    if not isinstance(cycle, dict):
        return cycle
    flat = dict(cycle)
    for key in CYCLE_TIMESTAMP_KEYS:
        timestamp = flat.get(key)
        if isinstance(timestamp, dict) and "iso8601" in timestamp:
            flat[key] = timestamp["iso8601"]
    return flat


def extract_sla(value: Mapping[str, Any]) -> dict:
    """Summarize a Service Management SLA field.

    With an ongoing cycle, its breach/pause/duration metrics are lifted to the
    top level. Otherwise the SLA counts as breached if any completed cycle was.
    """
    ongoing = value.get("ongoingCycle")
    if not isinstance(ongoing, dict):
        ongoing = None
    completed = value.get("completedCycles")
    if not isinstance(completed, list):
        completed = []

    result: dict[str, Any] = {"name": value.get("name"), "breached": False}

    if ongoing is not None:
        for key in SLA_SUMMARY_KEYS:
            if key in ongoing:
                result[key] = ongoing[key]
        result["breached"] = ongoing.get("breached", False)
    elif completed:
        result["breached"] = any(
            isinstance(cycle, dict) and bool(cycle.get("breached")) for cycle in completed
        )

    result["completedCyclesCount"] = len(completed)

    if ongoing is not None:
        result["ongoingCycle"] = _flatten_cycle(ongoing)
    if "completedCycles" in value:
        result["completedCycles"] = [_flatten_cycle(cycle) for cycle in completed]

    return result


def extract_custom_fields(fields: Mapping[str, Any] | None, lookup: FieldLookup | None) -> dict:
    """Collect an issue's non-null custom fields keyed by display name.

    Fields missing from the cache are still extracted (by shape only) and keyed
    by their raw id.
    """
    custom_fields: dict[str, Any] = {}
    if not isinstance(fields, Mapping):
        return custom_fields

    for key, value in fields.items():
        if not key.startswith(CUSTOM_FIELD_PREFIX) or value is None:
            continue

        metadata = lookup.get(key) if lookup is not None else None
        if metadata is None:
            logger.warning(
                f'Unknown custom field "{key}" - consider re-syncing the Jira integration '
                "to refresh field mappings"
            )
        custom_fields[metadata.name if metadata else key] = extract_field_value(value, metadata)

    return custom_fields
