# tests/workflows/test_nodes.py
"""Tests for per-type node configuration parsing."""

import pytest

from cadence.workflows.errors import NodeConfigError
from cadence.workflows.graph import Node
from cadence.workflows.nodes import (
    ConnectActionConfig,
    DelayConfig,
    LeadAttributeConfig,
    LikeActionConfig,
    MessageReceivedConfig,
    NodeConfig,
    parse_config,
)


def test_message_template_read_from_editor_key():
    config = parse_config(Node(id="m", type="action_linkedin_message", data={"messageTemplate": "Hi {{first_name}}"}))

    assert config.message_template == "Hi {{first_name}}"


def test_connect_note_is_optional():
    config = parse_config(Node(id="c", type="action_linkedin_connect", data={}))

    assert isinstance(config, ConnectActionConfig)
    assert config.note_text is None


def test_like_reaction_defaults_when_empty():
    config = parse_config(Node(id="l", type="action_linkedin_like", data={"reactionType": ""}))

    assert isinstance(config, LikeActionConfig)
    assert config.reaction_type == "LIKE"


def test_like_rejects_unknown_reaction():
    with pytest.raises(NodeConfigError, match="reactionType"):
        parse_config(Node(id="l", type="action_linkedin_like", data={"reactionType": "ANGRY"}))


def test_delay_defaults_to_one_day():
    """Missing, empty or zero duration falls back to one day."""
    for data in ({}, {"duration": 0, "unit": ""}, {"duration": None}):
        config = parse_config(Node(id="d", type="delay_wait", data=data))
        assert isinstance(config, DelayConfig)
        assert (config.duration, config.unit) == (1, "days")


def test_delay_rejects_negative_duration():
    with pytest.raises(NodeConfigError) as exc_info:
        parse_config(Node(id="d", type="delay_wait", data={"duration": -2, "unit": "hours"}))

    assert exc_info.value.node_id == "d"
    assert "duration" in str(exc_info.value)


def test_delay_unknown_unit_counts_as_days():
    config = parse_config(Node(id="d", type="delay_wait", data={"duration": 2, "unit": "weeks"}))

    assert (config.duration, config.unit) == (2, "days")


def test_message_received_keyword_filter():
    config = parse_config(
        Node(id="r", type="condition_message_received", data={"keywordFilter": None, "timeoutDays": 3})
    )

    assert isinstance(config, MessageReceivedConfig)
    assert config.keyword_filter == ""
    assert config.timeout_days == 3


def test_lead_attribute_value_coerced_to_text():
    config = parse_config(
        Node(id="a", type="condition_lead_attribute", data={"field": "employees", "operator": "equals", "value": 50})
    )

    assert isinstance(config, LeadAttributeConfig)
    assert config.value == "50"


def test_lead_attribute_operator_defaults_to_contains():
    config = parse_config(Node(id="a", type="condition_lead_attribute", data={"operator": ""}))

    assert config.operator == "contains"


def test_lead_attribute_rejects_unknown_operator():
    with pytest.raises(NodeConfigError, match="operator"):
        parse_config(
            Node(id="a", type="condition_lead_attribute", data={"field": "title", "operator": "contians"})
        )


def test_unknown_type_keeps_raw_data():
    config = parse_config(Node(id="x", type="trigger_start", data={"label": "Start", "extra": 1}))

    assert type(config) is NodeConfig
    assert config.label == "Start"
