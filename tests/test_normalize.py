import logging

import pytest

from jira_gateway.fields import FieldMetadata
from jira_gateway.normalize import (
    extract_custom_fields,
    extract_field_value,
    extract_sla,
    extract_user,
)


CASCADING = FieldMetadata(id="customfield_10002", name="Region", type="option-with-child")
OPTION = FieldMetadata(id="customfield_10001", name="Team", type="option")

LOOKUP = {meta.id: meta for meta in (CASCADING, OPTION)}

USER = {
    "self": "https://example.atlassian.net/rest/api/3/user?accountId=abc",
    "accountId": "abc",
    "displayName": "Ada Lovelace",
    "emailAddress": "ada@example.com",
    "avatarUrls": {"48x48": "https://example.com/a.png"},
    "active": True,
}


@pytest.mark.parametrize("value", ["plain text", 42, 3.5, True, "2024-01-01"])
def test_scalars_pass_through(value):
    assert extract_field_value(value) == value


def test_none_stays_none():
    assert extract_field_value(None) is None
    assert extract_field_value(None, CASCADING) is None


def test_user_is_projected_to_identifying_keys():
    assert extract_field_value(USER) == {
        "accountId": "abc",
        "displayName": "Ada Lovelace",
        "emailAddress": "ada@example.com",
    }


def test_user_without_email_omits_the_key():
    assert extract_user({"accountId": "abc", "displayName": "Ada"}) == {
        "accountId": "abc",
        "displayName": "Ada",
    }


def test_user_wins_over_value_and_name():
    assert extract_field_value({"accountId": "abc", "value": "x", "name": "y"}) == {"accountId": "abc"}


def test_option_unwraps_to_value():
    assert extract_field_value({"self": "...", "id": "10100", "value": "Platform"}, OPTION) == "Platform"


def test_named_object_unwraps_to_name():
    assert extract_field_value({"id": "3", "name": "In Progress", "statusCategory": {}}) == "In Progress"


def test_value_wins_over_name():
    assert extract_field_value({"value": "A", "name": "B"}) == "A"


def test_unknown_object_is_returned_unchanged():
    raw = {"id": "1", "foo": {"bar": 1}}
    assert extract_field_value(raw) == raw


def test_arrays_are_extracted_elementwise():
    raw = [{"value": "Red"}, {"value": "Blue"}, None, "loose"]
    assert extract_field_value(raw) == ["Red", "Blue", None, "loose"]


def test_empty_array():
    assert extract_field_value([]) == []


def test_cascading_select_with_child():
    raw = {"value": "EMEA", "id": "1", "child": {"value": "UK", "id": "2"}}
    assert extract_field_value(raw, CASCADING) == {"parent": "EMEA", "child": "UK"}


def test_cascading_select_without_child_omits_child():
    assert extract_field_value({"value": "EMEA"}, CASCADING) == {"parent": "EMEA"}


def test_cascading_select_needs_metadata():
    raw = {"value": "EMEA", "child": {"value": "UK"}}
    assert extract_field_value(raw) == "EMEA"
    assert extract_field_value(raw, OPTION) == "EMEA"


def test_metadata_applies_to_array_elements():
    raw = [{"value": "EMEA", "child": {"value": "UK"}}, {"value": "APAC"}]
    assert extract_field_value(raw, CASCADING) == [
        {"parent": "EMEA", "child": "UK"},
        {"parent": "APAC"},
    ]


def test_sla_with_ongoing_cycle_takes_sla_branch_despite_name():
    raw = {
        "id": "1",
        "name": "Time to first response",
        "completedCycles": [],
        "ongoingCycle": {
            "startTime": {"iso8601": "2024-01-01T09:00:00+0000", "epochMillis": 1},
            "breachTime": {"iso8601": "2024-01-01T13:00:00+0000"},
            "breached": True,
            "paused": False,
            "withinCalendarHours": True,
            "goalDuration": {"millis": 14400000, "friendly": "4h"},
            "elapsedTime": {"millis": 18000000, "friendly": "5h"},
            "remainingTime": {"millis": -3600000, "friendly": "-1h"},
        },
    }

    result = extract_field_value(raw)

    assert result["name"] == "Time to first response"
    assert result["breached"] is True
    assert result["paused"] is False
    assert result["remainingTime"] == {"millis": -3600000, "friendly": "-1h"}
    assert result["goalDuration"]["friendly"] == "4h"
    assert result["completedCyclesCount"] == 0
    assert result["completedCycles"] == []
    assert result["ongoingCycle"]["startTime"] == "2024-01-01T09:00:00+0000"


def test_sla_completed_cycles_only():
    raw = {
        "name": "Time to resolution",
        "completedCycles": [
            {
                "startTime": {"iso8601": "2024-01-01T09:00:00+0000"},
                "stopTime": {"iso8601": "2024-01-02T09:00:00+0000"},
                "breached": False,
            },
            {
                "startTime": {"iso8601": "2024-01-03T09:00:00+0000"},
                "stopTime": {"iso8601": "2024-01-05T09:00:00+0000"},
                "breached": True,
            },
        ],
    }

    result = extract_field_value(raw)

    assert result["breached"] is True
    assert result["completedCyclesCount"] == 2
    assert "ongoingCycle" not in result
    assert [c["stopTime"] for c in result["completedCycles"]] == [
        "2024-01-02T09:00:00+0000",
        "2024-01-05T09:00:00+0000",
    ]


def test_sla_ongoing_cycle_breach_flag_is_authoritative():
    raw = {
        "name": "Time to resolution",
        "ongoingCycle": {"breached": False, "paused": True},
        "completedCycles": [{"breached": True}],
    }
    result = extract_sla(raw)
    assert result["breached"] is False
    assert result["paused"] is True
    assert result["completedCyclesCount"] == 1


@pytest.mark.parametrize(
    "raw",
    [
        {"ongoingCycle": None},
        {"ongoingCycle": "garbage", "completedCycles": "garbage"},
        {"completedCycles": [None, 1, "x"]},
    ],
)
def test_sla_never_raises_on_odd_shapes(raw):
    result = extract_field_value(raw)
    assert result["breached"] is False


def test_custom_fields_keyed_by_display_name():
    fields = {
        "summary": "Not custom",
        "customfield_10001": {"value": "Platform"},
        "customfield_10002": {"value": "EMEA", "child": {"value": "UK"}},
        "customfield_10009": None,
    }

    assert extract_custom_fields(fields, LOOKUP) == {
        "Team": "Platform",
        "Region": {"parent": "EMEA", "child": "UK"},
    }


def test_unknown_custom_field_keyed_by_id_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="jira_gateway.normalize"):
        result = extract_custom_fields({"customfield_99999": {"value": "X"}}, LOOKUP)

    assert result == {"customfield_99999": "X"}
    assert 'Unknown custom field "customfield_99999"' in caplog.text


def test_custom_fields_without_lookup():
    assert extract_custom_fields({"customfield_1": {"name": "n"}}, None) == {"customfield_1": "n"}


def test_custom_fields_of_missing_fields_object():
    assert extract_custom_fields(None, LOOKUP) == {}


@pytest.mark.parametrize("fields", [["customfield_1"], "customfield_1", 5])
def test_custom_fields_of_non_object_fields(fields):
    assert extract_custom_fields(fields, LOOKUP) == {}


@pytest.mark.parametrize("value", ["accountId", ["accountId"], 1])
def test_user_projection_of_non_object(value):
    assert extract_user(value) is None
