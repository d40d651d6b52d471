from __future__ import annotations

import uuid

import sqlalchemy as sa

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


def _any(*clauses: tuple[str, str, str]) -> dict:
    return {"any": [{field: {op: value}} for field, op, value in clauses]}


def default_rules(assignee_id: uuid.UUID | None = None) -> list[dict]:
    """The starter rule set every project inbox gets; `assignee_id` fills the assignTo actions."""
    assign_to = str(assignee_id) if assignee_id else None
    return [
        {
            "name": "High Priority - Urgent Keywords",
            "description": "Automatically set high priority for emails containing urgent keywords",
            "priority": 10,
            "enabled": True,
            "conditions": _any(
                ("subject", "contains", "URGENT"),
                ("subject", "contains", "CRITICAL"),
                ("subject", "contains", "EMERGENCY"),
                ("body", "contains", "asap"),
            ),
            "actions": {"setPriority": "HIGH", "addLabels": ["urgent"]},
            "stop_on_match": False,
        },
        {
            "name": "Bug Report Detection",
            "description": "Detect and categorize bug reports",
            "priority": 8,
            "enabled": True,
            "conditions": _any(
                ("subject", "contains", "bug"),
                ("subject", "contains", "error"),
                ("subject", "contains", "broken"),
                ("subject", "contains", "not working"),
                ("body", "contains", "stack trace"),
            ),
            "actions": {"setPriority": "HIGH", "addLabels": ["bug", "technical"], "assignTo": assign_to},
            "stop_on_match": False,
        },
        {
            "name": "Feature Request",
            "description": "Categorize feature requests and enhancement suggestions",
            "priority": 5,
            "enabled": True,
            "conditions": _any(
                ("subject", "contains", "feature"),
                ("subject", "contains", "enhancement"),
                ("subject", "contains", "suggestion"),
                ("subject", "contains", "improvement"),
                ("body", "contains", "would be nice"),
                ("body", "contains", "can you add"),
            ),
            "actions": {"setPriority": "MEDIUM", "addLabels": ["feature-request", "enhancement"]},
            "stop_on_match": False,
        },
        {
            "name": "VIP Customer Priority",
            "description": "High priority for VIP customer domains",
            "priority": 9,
            # Off until the VIP domains are configured.
            "enabled": False,
            "conditions": _any(
                ("from", "matches", "@enterprise-client.com"),
                ("from", "matches", "@vip-customer.com"),
            ),
            "actions": {"setPriority": "HIGHEST", "addLabels": ["vip", "enterprise"], "assignTo": assign_to},
            "stop_on_match": False,
        },
        {
            "name": "Support Question",
            "description": "Standard support questions with medium priority",
            "priority": 3,
            "enabled": True,
            "conditions": _any(
                ("subject", "contains", "how to"),
                ("subject", "contains", "help"),
                ("subject", "contains", "question"),
                ("subject", "contains", "support"),
                ("body", "contains", "can you help"),
            ),
            "actions": {"setPriority": "MEDIUM", "addLabels": ["support", "question"]},
            "stop_on_match": False,
        },
        {
            "name": "Auto-Reply for New Requests",
            "description": "Send automatic acknowledgment for new support requests",
            "priority": 1,
            "enabled": True,
            "conditions": {"all": [{"subject": {"matches": "^(?!Re:).*"}}]},
            "actions": {
                "autoReply": (
                    "Thank you for contacting us. We have received your request and will respond within "
                    "24 hours during business days. For urgent matters, please call our support line."
                )
            },
            "stop_on_match": False,
        },
        {
            "name": "Spam Detection - Common Patterns",
            "description": "Detect common spam patterns and mark as spam",
            "priority": 15,
            "enabled": True,
            "conditions": _any(
                ("subject", "contains", "CONGRATULATIONS"),
                ("subject", "contains", "You have won"),
                ("subject", "contains", "Click here now"),
                ("subject", "contains", "Limited time offer"),
                ("from", "contains", "noreply@suspicious"),
            ),
            "actions": {"markAsSpam": True},
            "stop_on_match": True,
        },
        {
            "name": "Out of Office Detection",
            "description": "Detect and ignore out of office auto-replies",
            "priority": 12,
            "enabled": True,
            "conditions": _any(
                ("subject", "contains", "Out of Office"),
                ("subject", "contains", "Auto Reply"),
                ("subject", "contains", "Automatic Reply"),
                ("body", "contains", "I am currently out of the office"),
            ),
            "actions": {"markAsSpam": False, "setPriority": "LOWEST", "addLabels": ["auto-reply", "out-of-office"]},
            "stop_on_match": True,
        },
    ]


class InboxRulesSeeder(BaseSeeder):
    name = "inbox_rules"

    def seed_default_rules(self, inbox_id: uuid.UUID, assignee_id: uuid.UUID | None = None) -> dict:
        r = schema.inbox_rules
        existing = {row["name"] for row in self._all(sa.select(r.c.name).where(r.c.inbox_id == inbox_id))}

        created = skipped = 0
        for rule in default_rules(assignee_id):
            if rule["name"] in existing:
                skipped += 1
                continue
            row = {"id": self._uuid(inbox_id, rule["name"]), **rule, "inbox_id": inbox_id, **self._audit(assignee_id)}
            if self._try_insert(r, row):
                created += 1
            else:
                skipped += 1

        logger.info("inbox_rules_seeded", inbox_id=str(inbox_id), created=created, skipped=skipped)
        return {"created": created, "skipped": skipped}

    def seed_rules_for_all_inboxes(self) -> dict:
        i, m = schema.project_inboxes, schema.project_members
        first_member = (
            sa.select(m.c.user_id)
            .where(m.c.project_id == i.c.project_id)
            .order_by(m.c.joined_at, m.c.user_id)
            .limit(1)
            .scalar_subquery()
        )
        inboxes = self._all(sa.select(i.c.id, first_member.label("assignee_id")).order_by(i.c.created_at))

        total_created = total_skipped = 0
        for inbox in inboxes:
            result = self.seed_default_rules(inbox["id"], inbox["assignee_id"])
            total_created += result["created"]
            total_skipped += result["skipped"]

        logger.info(
            "seed_step_finished", step=self.name, created=total_created, skipped=total_skipped, inboxes=len(inboxes)
        )
        return {"total_created": total_created, "total_skipped": total_skipped, "inboxes_processed": len(inboxes)}

    def clear(self) -> int:
        return self._delete_all(schema.inbox_rules)
