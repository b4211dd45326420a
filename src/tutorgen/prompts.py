"""Prompt templates for every agent in the tutorial pipeline."""

from __future__ import annotations

import json
import textwrap
from typing import Sequence

__all__ = [
    "AUTO_LANGUAGE",
    "SEARCH_MARKER",
    "AUDIENCE_PRESETS",
    "topic_analysis_prompt",
    "outline_prompt",
    "content_prompt",
    "search_summary_prompt",
    "simplify_prompt",
]

AUTO_LANGUAGE = "auto"
SEARCH_MARKER = "(requires_search)"
AUDIENCE_PRESETS: tuple[str, ...] = ("Curious Kid (8-12)", "Beginner (13+)", "Expert")


def _is_auto(language: str | None) -> bool:
    return not language or language.strip().lower() == AUTO_LANGUAGE


def topic_analysis_prompt(topic: str) -> str:
    return textwrap.dedent(
        f"""
        You decide whether a tutorial topic depends on time-sensitive information.
        Topic: "{topic}"

        A topic is time-sensitive when a good tutorial needs recent facts: current events,
        latest statistics, prices, releases, or technology that changes month to month.
        Respond ONLY with a JSON object of the form {{"requires_search": true}} or
        {{"requires_search": false}}.
        """
    ).strip()


def outline_prompt(topic: str, num_sections: int, language: str, *, time_sensitive: bool) -> str:
    if _is_auto(language):
        language_line = (
            "The language of the headings in the JSON array must match the language of "
            f'the input topic "{topic}".'
        )
    else:
        language_line = f"The language of the headings in the JSON array must be {language}."

    if time_sensitive:
        marker_line = (
            "This topic depends on recent information. Append the marker "
            f'"{SEARCH_MARKER}" to EVERY heading string.'
        )
    else:
        marker_line = (
            "For each heading, if you strongly believe it requires very recent information "
            "(e.g., current events, latest statistics, rapidly evolving tech that changes "
            f'yearly/monthly), append the marker "{SEARCH_MARKER}" to that heading string. '
            "Otherwise, do not add the marker."
        )

    lines = [
        "You are an expert curriculum designer.",
        f'Generate a concise tutorial outline for the topic: "{topic}".',
        language_line,
        'Respond ONLY with a JSON object of the form {"headings": ["...", "..."]}, '
        "where each string is a main section heading.",
        f"The array should contain exactly {num_sections} unique and logically sequenced headings.",
        marker_line,
        'Example for topic "Latest Advancements in AI (2024)" with 5 sections: {"headings": '
        '["Overview of AI in 2024", "Breakthroughs in Large Language Models (requires_search)", '
        '"New Applications in Healthcare (requires_search)", "Ethical Debates and Regulations", '
        '"Future Trends in AI (requires_search)"]}',
        'Example for topic "Learning Basic Python" with 4 sections: {"headings": '
        '["Introduction to Python", "Variables and Data Types", "Control Flow", "Functions"]}',
        "Do not include any introductory phrases, explanations, or markdown formatting outside the JSON.",
    ]
    return "\n".join(lines)


def content_prompt(
    *,
    topic: str,
    heading: str,
    headings: Sequence[str],
    previous_summary: str,
    audience: str,
    language: str,
    search_context: str | None = None,
    next_heading: str | None = None,
) -> str:
    if _is_auto(language):
        language_line = (
            "The response must be written entirely in the same language as the topic "
            f'"{topic}" and the current heading "{heading}".'
        )
    else:
        language_line = f"The response must be written entirely in {language}."

    parts = [
        f'You are an expert technical writer and educator, creating content for a tutorial on "{topic}".',
        language_line,
        "",
        f"The overall tutorial outline is: {json.dumps(list(headings), ensure_ascii=False)}.",
        f'Your target audience is: "{audience}". Adapt your writing style, tone, examples, and complexity '
        'accordingly. For a "Curious Kid", use simple analogies and engaging language. For a "Beginner", '
        'be clear and avoid jargon where possible. For an "Expert", be concise and technically deep.',
        "",
        f'You are currently writing the body content for the section titled: "{heading}".',
        "",
        f"Context from previous section: {previous_summary}",
    ]
    if search_context:
        parts.extend(
            [
                "",
                "Additionally, here is some relevant information obtained from a recent internet search "
                f'related to "{heading}":',
                "<search_results>",
                search_context.strip(),
                "</search_results>",
                "Incorporate this information naturally where appropriate, but keep the focus on explaining "
                f'the core concepts of "{heading}".',
            ]
        )
    parts.append("")
    if next_heading:
        parts.append(
            f'The next section will be: "{next_heading}". Ensure your content flows smoothly towards it '
            "but primarily focuses on the current heading."
        )
    else:
        parts.append(
            "This is the last section of the tutorial. Provide a good concluding feel, or summarize key "
            "takeaways related to this final heading."
        )
    parts.extend(
        [
            "",
            "Instructions for your response:",
            "1. Provide detailed, informative, and easy-to-understand text for this section's body.",
            "2. Aim for 2-5 paragraphs, or equivalent detail with lists/code snippets where appropriate.",
            "3. You MAY use Markdown (lists, bold, inline code). Do NOT use H1 (#) or H2 (##) headings.",
            f'4. Focus ONLY on "{heading}". Do NOT repeat the section title in your response.',
            '5. Do NOT write "In this section..." or similar meta-commentary.',
        ]
    )
    return "\n".join(parts)


def search_summary_prompt(query: str, evidence: str, language: str) -> str:
    if _is_auto(language):
        language_line = "Respond in the same language as the query."
    else:
        language_line = f"Respond in {language}."
    return textwrap.dedent(
        f"""
        Summarize the key information about: "{query}".
        {language_line}
        Use ONLY the evidence below. Do not add facts that are not present in it; if the
        evidence is thin, say less rather than guessing. Focus on recent developments,
        data, or facts when the query implies it.

        Evidence:
        """
    ).strip() + f"\n{evidence}"


def simplify_prompt(text: str, audience: str, language: str) -> str:
    if _is_auto(language):
        language_line = "The rewritten text must be in the same language as the original text."
    else:
        language_line = f"The rewritten text must be in {language}."
    return textwrap.dedent(
        f"""
        You are an expert at simplifying complex topics.
        Rewrite the following text to be easily understandable for the target audience: "{audience}".
        {language_line}
        - For a "Curious Kid (8-12)", use very simple words, short sentences, and a fun, encouraging tone.
        - For a "Beginner (13+)", explain jargon and focus on clarity and foundational concepts.
        - For an "Expert", rephrase for maximum clarity and conciseness, removing any fluff.

        Do not add any conversational introductions. Just provide the rewritten text directly.

        Original Text:
        \"\"\"
        """
    ).strip() + f"\n{text}\n\"\"\""
