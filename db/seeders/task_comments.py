from __future__ import annotations

import random

from db import schema
from db.logging import logger
from db.seeders.base import BaseSeeder


ACTIONS = [
    "submit the form",
    "navigate to the dashboard",
    "upload a file",
    "save their preferences",
    "search for items",
    "filter the results",
    "update their profile",
    "delete an item",
]

STATUS_UPDATES = [
    "Started working on this task. Initial research is complete.",
    "Made good progress today. About 60% complete.",
    "This is taking longer than expected due to some technical challenges.",
    "Almost done! Just need to add some tests and documentation.",
    "Task completed successfully. Ready for review.",
    "Encountered a blocker with the third-party API. Waiting for their response.",
    "Updated the implementation based on the feedback from the last review.",
    "Testing phase is complete. Everything looks good.",
]

QUESTIONS = [
    "Should we also consider adding error handling for edge cases?",
    "What about mobile compatibility? Do we need to test on different devices?",
    "I think we could optimize this further. Any thoughts on caching?",
    "The current approach works, but we might want to refactor for better maintainability.",
    "Do we need to update the documentation after this change?",
    "Should we add any analytics tracking to measure the impact?",
    "What's the expected timeline for the dependent tasks?",
    "Can we get design feedback before finalizing the UI changes?",
]

REPLIES = [
    "Thanks for the update! That sounds like a good approach.",
    "Agreed. Let's proceed with that plan.",
    "Good point. I'll look into that as well.",
    "Let me know if you need any help with this.",
    "Great work! The solution looks solid.",
    "I can help with the testing part if needed.",
    "Makes sense. Let's schedule a quick discussion.",
    "Perfect! This should resolve the issue.",
]

REPLY_CHANCE = 0.3
MAX_COMMENTED_TASKS = 10


def comments_for_task(task_type: str, rng: random.Random) -> list[str]:
    if task_type == "BUG":
        return [
            f"I can reproduce this issue consistently. It happens when the user tries to {rng.choice(ACTIONS)}. "
            "The error occurs in the browser console.",
            "Looking into this now. It seems to be related to the recent changes in the authentication flow.",
            "Fixed the issue by updating the validation logic. The problem was with how we handle edge cases in user input.",
        ]
    if task_type == "STORY":
        return [
            "This feature will significantly improve user experience. I suggest we also consider mobile responsiveness from the start.",
            "Great idea! I've created some initial mockups. Should we schedule a design review meeting?",
            "The implementation is progressing well. I've completed about 70% of the functionality.",
        ]
    if task_type == "EPIC":
        return [
            "This is a major feature that will span multiple sprints. Let's break it down into smaller, manageable tasks.",
            "I've outlined the technical approach in the attached document. We should discuss the architecture before proceeding.",
        ]
    return [rng.choice(STATUS_UPDATES), rng.choice(QUESTIONS)]


class TaskCommentsSeeder(BaseSeeder):
    name = "task_comments"

    def seed(self, tasks: list[dict], users: list[dict]) -> list[dict]:
        if not tasks:
            raise ValueError("Tasks must be seeded before task comments")
        if not users:
            raise ValueError("Users must be seeded before task comments")

        logger.info("seed_step_started", step=self.name)
        created: list[dict] = []
        for task in tasks[::2][:MAX_COMMENTED_TASKS]:
            contents = comments_for_task(task["type"], self.rng)
            for i, content in enumerate(contents):
                author = users[i % len(users)]
                row = {
                    "id": self._uuid(task["id"], i),
                    "content": content,
                    "task_id": task["id"],
                    "author_id": author["id"],
                    "parent_comment_id": None,
                    **self._audit(author["id"]),
                }
                if not self._try_insert(schema.task_comments, row):
                    continue
                created.append(row)

                if self.rng.random() < REPLY_CHANCE and len(contents) > 1:
                    replier = users[(i + 1) % len(users)]
                    reply = {
                        "id": self._uuid(task["id"], i, "reply"),
                        "content": self.rng.choice(REPLIES),
                        "task_id": task["id"],
                        "author_id": replier["id"],
                        "parent_comment_id": row["id"],
                        **self._audit(replier["id"]),
                    }
                    if self._try_insert(schema.task_comments, reply):
                        created.append(reply)

        logger.info("seed_step_finished", step=self.name, comments=len(created))
        return created

    def clear(self) -> int:
        return self._delete_all(schema.task_comments)
