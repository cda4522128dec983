import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from flowbuilder.workflow.analyzer import analyze, complexity_tier, estimate_execution_seconds
from flowbuilder.workflow.ids import SequentialIdGenerator
from flowbuilder.workflow.schema import WorkflowGraph, WorkflowRequest
from flowbuilder.workflow.synthesizer import synthesize, synthesize_advanced
from flowbuilder.workflow.vocabulary import AnalysisTuning

TIER_ORDER = {"simple": 0, "moderate": 1, "complex": 2}


def make_request(**overrides) -> WorkflowRequest:
    data = {
        "name": "Daily Report",
        "trigger_kind": "scheduled",
        "integrations": ["Slack"],
        "action_narrative": "post a daily summary",
    }
    data.update(overrides)
    return WorkflowRequest.model_validate(data)


def analyze_request(request: WorkflowRequest, tuning: AnalysisTuning | None = None):
    graph = synthesize(request, SequentialIdGenerator())
    return graph, analyze(graph, request, tuning)


class WorkflowAnalysisScenarioTests(unittest.TestCase):
    def test_single_slack_schedule_is_simple(self):
        graph, analysis = analyze_request(make_request())

        self.assertEqual(analysis.node_count, 2)
        self.assertEqual(analysis.connection_count, 1)
        self.assertEqual(analysis.complexity_tier, "simple")
        self.assertEqual(analysis.estimated_execution_seconds, 5 + 2 * 2)

    def test_six_integrations_with_enterprise_and_database(self):
        request = make_request(
            integrations=["Slack", "Google Sheets", "Stripe", "Salesforce", "PostgreSQL", "MongoDB"]
        )
        graph, analysis = analyze_request(request)

        self.assertEqual(analysis.node_count, 7)
        self.assertEqual(analysis.connection_count, 6)
        self.assertEqual(analysis.complexity_tier, "moderate")
        # base + per node + enterprise + database
        self.assertEqual(analysis.estimated_execution_seconds, 5 + 14 + 15 + 10)
        self.assertTrue(any("error handling" in issue for issue in analysis.potential_issues))
        self.assertTrue(any("PCI" in note for note in analysis.security_considerations))
        self.assertTrue(any("batching" in s for s in analysis.optimization_suggestions))

    def test_webhook_trigger_always_gets_security_note(self):
        for integrations in (["Slack"], ["PostgreSQL"], ["Acme CRM", "Stripe"]):
            with self.subTest(integrations=integrations):
                _, analysis = analyze_request(
                    make_request(trigger_kind="inbound-request", integrations=integrations)
                )
                self.assertIn(
                    "Webhook triggers should include proper authentication and input validation",
                    analysis.security_considerations,
                )

    def test_non_webhook_triggers_have_no_webhook_note(self):
        _, analysis = analyze_request(make_request(trigger_kind="ad-hoc"))
        self.assertFalse(any("Webhook" in note for note in analysis.security_considerations))
        self.assertEqual(len(analysis.security_considerations), 2)


class WorkflowAnalysisRuleTests(unittest.TestCase):
    def test_analysis_is_pure(self):
        request = make_request(integrations=["Slack", "Salesforce", "MySQL"])
        graph = synthesize(request, SequentialIdGenerator())
        self.assertEqual(analyze(graph, request), analyze(graph, request))

    def test_counts_match_graph(self):
        request = make_request(integrations=["Slack", "Notion"])
        graph = synthesize_advanced(request, SequentialIdGenerator())
        analysis = analyze(graph, request)
        self.assertEqual(analysis.node_count, len(graph.nodes))
        self.assertEqual(analysis.connection_count, graph.connection_count)

    def test_tier_never_decreases_as_graph_grows(self):
        tiers = []
        for count in range(1, 21):
            request = make_request(integrations=[f"Service {i}" for i in range(count)])
            graph = synthesize(request, SequentialIdGenerator())
            tiers.append(TIER_ORDER[complexity_tier(graph)])
        self.assertEqual(tiers, sorted(tiers))
        self.assertEqual(tiers[0], TIER_ORDER["simple"])
        self.assertEqual(tiers[-1], TIER_ORDER["complex"])

    def test_tier_boundaries(self):
        def tier_for(count: int) -> str:
            request = make_request(integrations=[f"Service {i}" for i in range(count)])
            return complexity_tier(synthesize(request, SequentialIdGenerator()))

        self.assertEqual(tier_for(4), "simple")  # 5 nodes, 4 connections
        self.assertEqual(tier_for(5), "moderate")
        self.assertEqual(tier_for(14), "moderate")
        self.assertEqual(tier_for(15), "complex")  # 16 nodes

    def test_branching_node_prevents_simple_tier(self):
        graph = WorkflowGraph.model_validate(
            {
                "nodes": [
                    {"id": "trigger", "display_name": "Start", "kind": "n8n-nodes-base.manualTrigger"},
                    {"id": "check", "display_name": "Check", "kind": "n8n-nodes-base.if"},
                ],
                "connections": {"trigger": [{"target": "check"}]},
            }
        )
        self.assertEqual(complexity_tier(graph), "moderate")

    def test_enterprise_keywords_match_word_prefix_only(self):
        whatsapp = make_request(integrations=["WhatsApp"])
        graph = synthesize(whatsapp, SequentialIdGenerator())
        self.assertEqual(estimate_execution_seconds(graph, whatsapp), 9)

        sap = make_request(integrations=["SAP S/4HANA"])
        graph = synthesize(sap, SequentialIdGenerator())
        self.assertEqual(estimate_execution_seconds(graph, sap), 9 + 15)

    def test_tuning_overrides_constants(self):
        request = make_request(integrations=["Salesforce"])
        tuning = AnalysisTuning(enterprise_penalty_seconds=20, per_node_seconds=3)
        _, analysis = analyze_request(request, tuning)
        self.assertEqual(analysis.estimated_execution_seconds, 5 + 3 * 2 + 20)

    def test_missing_error_handling_threshold(self):
        _, small = analyze_request(make_request(integrations=["Slack", "Notion"]))
        self.assertFalse(any("error handling" in issue for issue in small.potential_issues))

        request = make_request(integrations=["Slack", "Notion", "Trello"])
        _, large = analyze_request(request)
        self.assertTrue(any("error handling" in issue for issue in large.potential_issues))

        advanced = synthesize_advanced(request, SequentialIdGenerator())
        handled = analyze(advanced, request)
        self.assertFalse(any("error handling" in issue for issue in handled.potential_issues))

    def test_rate_limit_issue_skipped_for_local_integrations(self):
        _, local = analyze_request(make_request(integrations=["PostgreSQL", "MySQL"]))
        self.assertFalse(any("rate limiting" in issue for issue in local.potential_issues))

        _, remote = analyze_request(make_request(integrations=["PostgreSQL", "Slack"]))
        self.assertTrue(any("rate limiting" in issue for issue in remote.potential_issues))

    def test_transform_without_shaping_node_is_flagged(self):
        plain = make_request(integrations=["Slack"])
        graph = synthesize(plain, SequentialIdGenerator())
        asks_for_transform = make_request(action_narrative="convert the payload and post it")
        analysis = analyze(graph, asks_for_transform)
        self.assertTrue(any("transformation" in issue for issue in analysis.potential_issues))

    def test_default_schedule_and_generic_node_notes(self):
        _, analysis = analyze_request(make_request(integrations=["Acme CRM"]))
        self.assertTrue(any("Default schedule" in issue for issue in analysis.potential_issues))
        self.assertTrue(any("'Acme CRM'" in issue for issue in analysis.potential_issues))

        _, explicit = analyze_request(make_request(trigger_detail="daily at 8am"))
        self.assertFalse(any("Default schedule" in issue for issue in explicit.potential_issues))

    def test_unrecognised_schedule_detail_is_flagged(self):
        for detail in ("every 2 weeks", "every 3 days", "every 30 seconds"):
            with self.subTest(detail=detail):
                graph, analysis = analyze_request(make_request(trigger_detail=detail))
                item = graph.nodes[0].parameters["triggerTimes"]["item"][0]
                self.assertEqual(item, {"mode": "everyDay", "hour": 9, "minute": 0})
                self.assertIn(
                    f"Schedule '{detail}' was not recognised - default schedule used "
                    "(daily at 09:00); confirm the timing and timezone",
                    analysis.potential_issues,
                )

    def test_understood_detail_matching_default_time_is_not_flagged(self):
        _, analysis = analyze_request(make_request(trigger_detail="daily at 9am"))
        self.assertFalse(any("schedule" in issue.lower() for issue in analysis.potential_issues))


if __name__ == "__main__":
    unittest.main()
