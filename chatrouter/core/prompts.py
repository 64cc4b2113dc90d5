"""
Prompt management.

This module provides a PromptManager that builds the system prompts
sent to the providers: the user's configured prompt enriched with the
current date, time and remembered facts, and the dedicated prompts
used by search mode.
"""

from datetime import datetime
from typing import Any, Callable, List, Optional

DEFAULT_SYSTEM_PROMPT = (
    "FORMATTING RULES:\n"
    "1. Use LaTeX for formulas: $inline$ or $$block$$.\n"
    "2. Use Markdown to format text.\n"
    "3. Use Markdown tables (| col | col |).\n"
    "4. When asked to plot a graph, build a Markdown table of values (X | Y) with at least 10 points.\n"
    "5. Use fenced code blocks for code: ```language ... ```."
)


def format_long_date(now: datetime) -> str:
    """`Monday, October 19, 2026`"""
    return f"{now:%A}, {now:%B} {now.day}, {now.year}"


class PromptManager:
    """
    Build system prompts from the application config.

    `clock` returns the current time; tests pass a fixed one.
    """

    def __init__(self, config: Any, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.config = config
        self.clock = clock or datetime.now

    def build_effective_system_prompt(self) -> str:
        """
        Prepend the optional date, time and memory context to the system prompt.
        """
        now = self.clock()
        context: List[str] = []
        if self.config.include_date:
            context.append(f"Current date: {format_long_date(now)}")
        if self.config.include_time:
            context.append(f"Current time: {now:%H:%M}")
        if self.config.memories:
            facts = "\n".join(f"- {m}" for m in self.config.memories)
            context.append(f"USER INFORMATION (remember and take into account):\n{facts}")

        prompt = self.config.system_prompt
        if context:
            prompt = "\n".join(context) + "\n\n" + prompt
        return prompt

    def get_search_system_prompt(self) -> str:
        now = self.clock()
        return (
            f"Today is {format_long_date(now)}. The current year is {now.year}.\n\n"
            "You are an AI search assistant with access to Google Search. Answer the "
            "user's question using up-to-date information from the web.\n\n"
            "RULES:\n"
            "1. Provide accurate, comprehensive, and current information.\n"
            "2. Do NOT use numbered citation markers like [1], [2] in the text. Write naturally.\n"
            "3. Use Markdown formatting: headers, lists, bold text for readability.\n"
            "4. Use LaTeX for math: $inline$ or $$block$$.\n"
            "5. Respond in the SAME LANGUAGE as the user's question.\n"
            "6. If information is uncertain, say so.\n"
            "7. Be specific with dates, numbers, and facts.\n"
            "8. Use conversation history for context: if the user says \"more details\" "
            "or \"tell me more\", refer to the previous topic."
        )

    def get_search_fallback_prompt(self) -> str:
        now = self.clock()
        return (
            f"Today is {format_long_date(now)}. The user is asking a question that would "
            "benefit from current information. Answer as best you can from your training "
            "knowledge. If the information might be outdated, clearly state that. Respond "
            "in the same language as the user's question. Use Markdown for formatting."
        )
