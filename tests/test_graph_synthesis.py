import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from flowbuilder.workflow.ids import SequentialIdGenerator
from flowbuilder.workflow.schema import WorkflowGraph, WorkflowRequest
from flowbuilder.workflow.synthesizer import (
    X_SPACING,
    synthesize,
    synthesize_advanced,
    synthesize_simplified,
)
from flowbuilder.workflow.trigger import LAYOUT_ORIGIN, build_trigger, parse_schedule


def make_request(**overrides) -> WorkflowRequest:
    data = {
        "name": "Daily Report",
        "trigger_kind": "scheduled",
        "integrations": ["Slack"],
        "action_narrative": "post a daily summary",
    }
    data.update(overrides)
    return WorkflowRequest.model_validate(data)


class WorkflowRequestTests(unittest.TestCase):
    def test_integrations_are_trimmed_and_deduplicated(self):
        request = make_request(integrations=[" Slack ", "slack", "", "Google Sheets", "SLACK"])
        self.assertEqual(request.integrations, ["Slack", "Google Sheets"])

    def test_requires_at_least_one_integration(self):
        with self.assertRaises(ValidationError):
            make_request(integrations=[])
        with self.assertRaises(ValidationError):
            make_request(integrations=["  ", ""])

    def test_rejects_unknown_trigger_kind(self):
        with self.assertRaises(ValidationError):
            make_request(trigger_kind="hourly")

    def test_enforces_field_limits(self):
        with self.assertRaises(ValidationError):
            make_request(name="x" * 101)
        with self.assertRaises(ValidationError):
            make_request(action_narrative="   ")
        with self.assertRaises(ValidationError):
            make_request(integrations=[f"Service {i}" for i in range(21)])
        with self.assertRaises(ValidationError):
            make_request(goals=["a", "b", "c", "d", "e", "f"])

    def test_blank_optional_text_becomes_none(self):
        request = make_request(trigger_detail="   ", description="")
        self.assertIsNone(request.trigger_detail)
        self.assertIsNone(request.description)


class GraphSynthesisTests(unittest.TestCase):
    def test_linear_chain_has_one_more_node_than_connections(self):
        for count in range(1, 7):
            with self.subTest(integrations=count):
                request = make_request(integrations=[f"Service {i}" for i in range(count)])
                graph = synthesize(request, SequentialIdGenerator())
                self.assertEqual(len(graph.nodes), count + 1)
                self.assertEqual(graph.connection_count, count)

    def test_nodes_follow_input_order_and_layout(self):
        request = make_request(integrations=["Slack", "Google Sheets", "Stripe"])
        graph = synthesize(request, SequentialIdGenerator())

        self.assertEqual(
            [node.id for node in graph.nodes],
            ["trigger", "integration_0", "integration_1", "integration_2"],
        )
        self.assertEqual(
            [node.display_name for node in graph.nodes[1:]],
            ["Slack", "Google Sheets", "Stripe"],
        )
        for index, node in enumerate(graph.nodes):
            self.assertEqual(node.position, (LAYOUT_ORIGIN[0] + index * X_SPACING, LAYOUT_ORIGIN[1]))

        self.assertEqual([c.target for c in graph.connections["trigger"]], ["integration_0"])
        self.assertEqual([c.target for c in graph.connections["integration_1"]], ["integration_2"])
        self.assertNotIn("integration_2", graph.connections)

    def test_single_integration_graph(self):
        graph = synthesize(make_request(), SequentialIdGenerator())
        self.assertEqual(len(graph.nodes), 2)
        self.assertEqual(graph.connection_count, 1)
        self.assertEqual(graph.nodes[1].kind, "n8n-nodes-base.slack")
        self.assertEqual(graph.nodes[1].credential_ref, "slackApi")
        self.assertEqual(graph.tags, ["generated", "scheduled", "automation"])

    def test_transform_narrative_appends_set_node(self):
        request = make_request(
            integrations=["Slack", "Airtable"],
            action_narrative="Transform the rows and post them",
        )
        graph = synthesize(request, SequentialIdGenerator())
        self.assertEqual(len(graph.nodes), 4)
        self.assertEqual(graph.connection_count, 3)
        self.assertEqual(graph.nodes[-1].id, "transform_data")
        self.assertEqual(graph.nodes[-1].kind, "n8n-nodes-base.set")

    def test_transform_keyword_needs_word_start(self):
        request = make_request(action_narrative="share information with the team")
        graph = synthesize(request, SequentialIdGenerator())
        self.assertEqual(len(graph.nodes), 2)

    def test_synthesis_is_deterministic_with_fixed_ids(self):
        request = make_request(trigger_kind="inbound-request", integrations=["Slack", "Notion"])
        first = synthesize(request, SequentialIdGenerator())
        second = synthesize(request, SequentialIdGenerator())
        self.assertEqual(first.model_dump(), second.model_dump())


class TriggerTests(unittest.TestCase):
    def test_every_trigger_kind_produces_an_entry_node(self):
        kinds = {
            "scheduled": "n8n-nodes-base.cron",
            "inbound-request": "n8n-nodes-base.webhook",
            "ad-hoc": "n8n-nodes-base.manualTrigger",
        }
        for kind, node_type in kinds.items():
            with self.subTest(kind=kind):
                node = build_trigger(kind, None, SequentialIdGenerator())
                self.assertEqual(node.id, "trigger")
                self.assertEqual(node.kind, node_type)
                self.assertEqual(node.position, LAYOUT_ORIGIN)

    def test_webhook_path_comes_from_the_id_generator(self):
        node = build_trigger("inbound-request", "orders from the shop", SequentialIdGenerator())
        self.assertEqual(node.parameters["path"], "webhook-1")
        self.assertEqual(node.webhook_id, "webhook-1")
        self.assertEqual(node.parameters["httpMethod"], "POST")
        self.assertEqual(node.notes, "orders from the shop")

    def test_missing_schedule_uses_daily_default(self):
        item, understood = parse_schedule(None)
        self.assertFalse(understood)
        self.assertEqual(item, {"mode": "everyDay", "hour": 9, "minute": 0})

    def test_schedule_phrases(self):
        cases = {
            "0 */2 * * *": {"mode": "custom", "cronExpression": "0 */2 * * *"},
            "every 15 minutes": {"mode": "everyX", "value": 15, "unit": "minutes"},
            "every 3 hours": {"mode": "everyX", "value": 3, "unit": "hours"},
            "hourly": {"mode": "everyHour", "minute": 0},
            "daily at 7:30 pm": {"mode": "everyDay", "hour": 19, "minute": 30},
            "every Friday at 5pm": {"mode": "everyWeek", "hour": 17, "minute": 0, "weekday": "5"},
            "every sunday": {"mode": "everyWeek", "hour": 9, "minute": 0, "weekday": "0"},
            "monthly": {"mode": "everyMonth", "hour": 9, "minute": 0, "dayOfMonth": 1},
        }
        for detail, expected in cases.items():
            with self.subTest(detail=detail):
                item, understood = parse_schedule(detail)
                self.assertTrue(understood)
                self.assertEqual(item, expected)

    def test_unrecognised_schedule_is_kept_as_note(self):
        node = build_trigger("scheduled", "whenever the moon is full", SequentialIdGenerator())
        item = node.parameters["triggerTimes"]["item"][0]
        self.assertEqual(item["mode"], "everyDay")
        self.assertEqual(node.notes, "whenever the moon is full")


class AlternativeGraphTests(unittest.TestCase):
    def test_simplified_only_for_four_or_more_integrations(self):
        small = make_request(integrations=["Slack", "Notion", "Trello"])
        self.assertIsNone(synthesize_simplified(small, SequentialIdGenerator()))

        large = make_request(integrations=["Slack", "Notion", "Trello", "Asana", "Jira"])
        graph = synthesize_simplified(large, SequentialIdGenerator())
        self.assertEqual(len(graph.nodes), 3)
        self.assertEqual(graph.tags, ["simplified", "generated"])

    def test_advanced_adds_error_branch(self):
        request = make_request(integrations=["Slack", "Notion"])
        graph = synthesize_advanced(request, SequentialIdGenerator())

        self.assertEqual(len(graph.nodes), 5)
        self.assertEqual(graph.connection_count, 3)
        self.assertEqual(graph.get_node("error_handler").kind, "n8n-nodes-base.errorTrigger")
        self.assertEqual(
            [c.target for c in graph.connections["error_handler"]], ["error_notification"]
        )
        self.assertIn("error-handling", graph.tags)


class GraphValidationTests(unittest.TestCase):
    def _node(self, node_id: str) -> dict:
        return {"id": node_id, "display_name": node_id, "kind": "n8n-nodes-base.noOp"}

    def test_rejects_cycles(self):
        with self.assertRaisesRegex(ValidationError, "Cycle"):
            WorkflowGraph.model_validate(
                {
                    "nodes": [self._node("a"), self._node("b"), self._node("c")],
                    "connections": {
                        "a": [{"target": "b"}],
                        "b": [{"target": "c"}],
                        "c": [{"target": "a"}],
                    },
                }
            )

    def test_rejects_unknown_targets_and_duplicates(self):
        with self.assertRaises(ValidationError):
            WorkflowGraph.model_validate(
                {"nodes": [self._node("a")], "connections": {"a": [{"target": "missing"}]}}
            )
        with self.assertRaises(ValidationError):
            WorkflowGraph.model_validate({"nodes": [self._node("a"), self._node("a")]})
        with self.assertRaises(ValidationError):
            WorkflowGraph.model_validate(
                {"nodes": [self._node("a")], "connections": {"a": [{"target": "a"}]}}
            )

    def test_accepts_branching_dag(self):
        graph = WorkflowGraph.model_validate(
            {
                "nodes": [self._node("a"), self._node("b"), self._node("c")],
                "connections": {"a": [{"target": "b", "port": 0}, {"target": "c", "port": 1}]},
            }
        )
        self.assertEqual(graph.connection_count, 2)


if __name__ == "__main__":
    unittest.main()
