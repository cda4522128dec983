"""Map free-text integration names to n8n node types.

Rules are evaluated top to bottom and the first match wins, so a specific
pattern ("google sheets") must sit above any broader pattern it contains
("google"). ``tests/test_node_resolver.py`` enforces that ordering.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Optional

CREDENTIAL_DOCS_URL = "https://docs.n8n.io/integrations/builtin/credentials/"


@dataclass(frozen=True)
class NodeTypeBinding:
    kind: str
    default_parameters: dict[str, Any] = field(default_factory=dict)
    credential_class: Optional[str] = None
    credential_name: str = ""
    auth_type: str = "API Key"
    docs_slug: str = ""
    matched: bool = True

    @property
    def setup_link(self) -> str:
        if not self.docs_slug:
            return CREDENTIAL_DOCS_URL
        return f"{CREDENTIAL_DOCS_URL}{self.docs_slug}/"


@dataclass(frozen=True)
class ResolverRule:
    patterns: tuple[str, ...]
    binding: NodeTypeBinding


def _rule(
    patterns: tuple[str, ...] | str,
    kind: str,
    credential_class: str | None,
    credential_name: str,
    *,
    auth_type: str = "API Key",
    docs_slug: str = "",
    **parameters: Any,
) -> ResolverRule:
    if isinstance(patterns, str):
        patterns = (patterns,)
    if not parameters:
        parameters = {"resource": "item", "operation": "create"}
    return ResolverRule(
        patterns=patterns,
        binding=NodeTypeBinding(
            kind=f"n8n-nodes-base.{kind}",
            default_parameters=parameters,
            credential_class=credential_class,
            credential_name=credential_name,
            auth_type=auth_type,
            docs_slug=docs_slug,
        ),
    )


RESOLVER_RULES: list[ResolverRule] = [
    # --- Communication ---
    _rule(
        "slack", "slack", "slackApi", "Slack API",
        docs_slug="slack",
        resource="message", operation="post", channel="#general",
        text="=Hello from n8n workflow!",
    ),
    _rule(
        "gmail", "gmail", "gmailOAuth2", "Gmail OAuth2 API",
        auth_type="OAuth2", docs_slug="google/oauth-single-service",
        resource="message", operation="send",
        subject="Automated Email from n8n",
        message="This email was sent automatically by your n8n workflow.",
    ),
    _rule("discord", "discord", "discordWebhookApi", "Discord Webhook", docs_slug="discord",
          resource="message", operation="send"),
    _rule("telegram", "telegram", "telegramApi", "Telegram API", docs_slug="telegram",
          resource="message", operation="sendMessage"),
    _rule("twilio", "twilio", "twilioApi", "Twilio API", docs_slug="twilio",
          resource="sms", operation="send"),
    _rule(("microsoft teams", "ms teams"), "microsoftTeams", "microsoftTeamsOAuth2Api",
          "Microsoft Teams OAuth2 API", auth_type="OAuth2", docs_slug="microsoft",
          resource="channelMessage", operation="create"),
    _rule(("microsoft sql", "sql server", "mssql"), "microsoftSql", "microsoftSql",
          "Microsoft SQL", auth_type="Connection", docs_slug="microsoftsql",
          operation="executeQuery"),
    _rule(("microsoft", "outlook"), "microsoftOutlook", "microsoftOutlookOAuth2Api",
          "Microsoft Outlook OAuth2 API", auth_type="OAuth2", docs_slug="microsoft",
          resource="message", operation="send"),
    _rule("sendgrid", "sendGrid", "sendGridApi", "SendGrid API", docs_slug="sendgrid",
          resource="mail", operation="send"),
    _rule("mailchimp", "mailchimp", "mailchimpApi", "Mailchimp API", docs_slug="mailchimp",
          resource="member", operation="create"),
    _rule("zoom", "zoom", "zoomOAuth2Api", "Zoom OAuth2 API", auth_type="OAuth2",
          docs_slug="zoom", resource="meeting", operation="create"),
    # --- Google Workspace: specific services before the bare "google" rule ---
    _rule("google sheets", "googleSheets", "googleSheetsOAuth2Api", "Google Sheets OAuth2 API",
          auth_type="OAuth2", docs_slug="google/oauth-single-service",
          resource="sheet", operation="append", range="A:Z"),
    _rule("google drive", "googleDrive", "googleDriveOAuth2Api", "Google Drive OAuth2 API",
          auth_type="OAuth2", docs_slug="google/oauth-single-service",
          resource="file", operation="upload"),
    _rule("google calendar", "googleCalendar", "googleCalendarOAuth2Api",
          "Google Calendar OAuth2 API", auth_type="OAuth2",
          docs_slug="google/oauth-single-service", resource="event", operation="create"),
    _rule("google", "httpRequest", "googleOAuth2Api", "Google OAuth2 API",
          auth_type="OAuth2", docs_slug="google/oauth-generic",
          authentication="predefinedCredentialType", nodeCredentialType="googleOAuth2Api",
          method="GET", url="https://www.googleapis.com/"),
    # --- Payments & commerce ---
    _rule("stripe", "stripe", "stripeApi", "Stripe API", docs_slug="stripe",
          resource="charge", operation="getAll"),
    _rule("paypal", "payPal", "payPalApi", "PayPal API", docs_slug="paypal",
          resource="payout", operation="create"),
    _rule("shopify", "shopify", "shopifyApi", "Shopify API", docs_slug="shopify",
          resource="order", operation="getAll"),
    _rule("woocommerce", "wooCommerce", "wooCommerceApi", "WooCommerce API",
          docs_slug="woocommerce", resource="order", operation="getAll"),
    # --- Databases ---
    _rule(("postgresql", "postgres"), "postgres", "postgres", "PostgreSQL",
          auth_type="Connection", docs_slug="postgres",
          operation="executeQuery", query="SELECT 1;"),
    _rule("mysql", "mySql", "mySql", "MySQL", auth_type="Connection", docs_slug="mysql",
          operation="executeQuery", query="SELECT 1;"),
    _rule("mongo", "mongoDb", "mongoDb", "MongoDB", auth_type="Connection",
          docs_slug="mongodb", operation="find", collection="items"),
    _rule("redis", "redis", "redis", "Redis", auth_type="Connection", docs_slug="redis",
          operation="get", key="key"),
    _rule("airtable", "airtable", "airtableTokenApi", "Airtable Personal Access Token",
          docs_slug="airtable", operation="append"),
    # --- Productivity & project management ---
    _rule("notion", "notion", "notionApi", "Notion API", docs_slug="notion",
          resource="databasePage", operation="create"),
    _rule("trello", "trello", "trelloApi", "Trello API", docs_slug="trello",
          resource="card", operation="create"),
    _rule("asana", "asana", "asanaApi", "Asana API", docs_slug="asana",
          resource="task", operation="create"),
    _rule("jira", "jira", "jiraSoftwareCloudApi", "Jira SW Cloud API", docs_slug="jira",
          resource="issue", operation="create"),
    _rule("github", "github", "githubApi", "GitHub API", docs_slug="github",
          resource="issue", operation="create"),
    _rule("dropbox", "dropbox", "dropboxApi", "Dropbox API", docs_slug="dropbox",
          resource="file", operation="upload"),
    _rule("calendly", "calendlyTrigger", "calendlyApi", "Calendly API", docs_slug="calendly",
          events=["invitee.created"]),
    _rule("typeform", "typeformTrigger", "typeformApi", "Typeform API", docs_slug="typeform",
          formId=""),
    # --- CRM & support ---
    _rule("hubspot", "hubspot", "hubspotApi", "HubSpot API", docs_slug="hubspot",
          resource="contact", operation="upsert"),
    _rule("salesforce", "salesforce", "salesforceOAuth2Api", "Salesforce OAuth2 API",
          auth_type="OAuth2", docs_slug="salesforce", resource="lead", operation="create"),
    _rule("zendesk", "zendesk", "zendeskApi", "Zendesk API", docs_slug="zendesk",
          resource="ticket", operation="create"),
    # --- Cloud & AI ---
    _rule(("aws", "amazon s3"), "awsS3", "aws", "AWS", docs_slug="aws",
          resource="file", operation="upload"),
    _rule("openai", "openAi", "openAiApi", "OpenAI API", docs_slug="openai",
          resource="text", operation="complete"),
    # --- Generic HTTP ---
    _rule(("http", "webhook", "rest api"), "httpRequest", None, "", method="POST",
          url="https://api.example.com/endpoint", authentication="none",
          sendBody=True, specifyBody="json"),
]

GENERIC_BINDING = NodeTypeBinding(
    kind="n8n-nodes-base.httpRequest",
    default_parameters={
        "method": "POST",
        "url": "https://api.example.com/endpoint",
        "authentication": "none",
        "sendBody": True,
        "specifyBody": "json",
    },
    matched=False,
)

_BY_CREDENTIAL: dict[str, NodeTypeBinding] = {}
for _r in RESOLVER_RULES:
    if _r.binding.credential_class:
        _BY_CREDENTIAL.setdefault(_r.binding.credential_class, _r.binding)


def _with_fresh_parameters(binding: NodeTypeBinding) -> NodeTypeBinding:
    # Callers may mutate node parameters; never hand out the table's dicts
    return NodeTypeBinding(
        kind=binding.kind,
        default_parameters=copy.deepcopy(binding.default_parameters),
        credential_class=binding.credential_class,
        credential_name=binding.credential_name,
        auth_type=binding.auth_type,
        docs_slug=binding.docs_slug,
        matched=binding.matched,
    )


def resolve(integration_name: str) -> NodeTypeBinding:
    """Return the binding for the first rule whose pattern occurs in the name."""
    lowered = integration_name.lower()
    for rule in RESOLVER_RULES:
        if any(pattern in lowered for pattern in rule.patterns):
            return _with_fresh_parameters(rule.binding)
    return _with_fresh_parameters(GENERIC_BINDING)


def credential_binding(credential_class: str) -> NodeTypeBinding | None:
    """Look up the table entry that declares ``credential_class``."""
    return _BY_CREDENTIAL.get(credential_class)
