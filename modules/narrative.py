"""
Narrative-Generation Connector — structured facts -> short travel briefing.

The model only ever sees qualitative hazard labels (``High``/``Moderate``/
``Low``), never the raw 0–10 scores, so it has no risk figures to quote.
Section layout and length are set by the system prompt:

    ## Quick Intro
    ## Main Attractions
    ## Weather and Climate
    ## Risks              (country-level queries only, always last)

Requires ``OPENAI_API_KEY``; without it every call raises
``NarrativeConfigError`` before any network traffic.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from modules.models import CountryRiskRecord, HAZARD_FIELDS, WeatherSnapshot

logger = logging.getLogger(__name__)

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
NARRATIVE_MAX_TOKENS = int(os.getenv("NARRATIVE_MAX_TOKENS", "300"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
MAX_WORDS = 150


class NarrativeError(Exception):
    """The text model call failed or returned nothing."""


class NarrativeConfigError(NarrativeError):
    """Narrative generation is not configured (missing credential)."""


@dataclass
class NarrativeSubject:
    destination: str
    country: CountryRiskRecord
    mode: str = "country"
    wikipedia: Optional[str] = None
    weather: Optional[WeatherSnapshot] = None

    @property
    def include_risks(self) -> bool:
        return self.mode == "country"


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def hazard_label(score: float | None) -> str:
    if score is None:
        return "Unknown"
    if score >= 7:
        return "High"
    if score >= 4:
        return "Moderate"
    return "Low"


def _system_prompt(include_risks: bool, comparison: bool) -> str:
    sections = ["Quick Intro", "Main Attractions", "Weather and Climate"]
    if include_risks:
        sections.append("Risks")
    layout = "\n".join(f"{i}. ## {name}" for i, name in enumerate(sections, 1))

    rules = [
        "Use only the facts provided below; do not add outside knowledge.",
        "Start directly with '## Quick Intro' with no title above it.",
        f"Keep the whole briefing under {MAX_WORDS} words.",
        "Use '##' headings and simple '-' bullet points only.",
        "Never use ** or any other bold formatting.",
        "Never state numeric risk scores, indices or rankings.",
    ]
    if include_risks:
        rules.append("'## Risks' is always the last section and mentions only hazards labelled High.")
    else:
        rules.append("Do not include a risks section.")
    if comparison:
        rules.append("Two destinations are given: cover both and highlight the key differences for travellers.")

    return (
        "You are a travel companion writing short destination briefings for tourists.\n\n"
        f"Sections, in this order:\n{layout}\n\n"
        "Rules:\n" + "\n".join(f"- {r}" for r in rules)
    )


def _facts_block(subject: NarrativeSubject, heading: str) -> str:
    c = subject.country
    lines = [
        f"{heading}: {subject.destination}",
        f"- Country: {c.country}",
        f"- Overall safety level: {c.risk_class or 'Unknown'}",
    ]
    if c.population_mio is not None:
        lines.append(f"- Population: {c.population_mio} million")
    if c.life_expectancy is not None:
        lines.append(f"- Life expectancy: {c.life_expectancy} years")
    if c.gdp_per_capita_usd is not None:
        lines.append(f"- GDP per capita: ${c.gdp_per_capita_usd:,.0f}")
    if c.human_dev_index is not None:
        lines.append(f"- Human development index: {c.human_dev_index}")

    if subject.include_risks:
        lines.append("- Hazards:")
        for name in HAZARD_FIELDS:
            lines.append(f"  * {name.replace('_', ' ').title()}: {hazard_label(getattr(c, name))}")

    lines.append(f"- Fun fact: {c.fun_fact or 'No fun fact available'}")

    w = subject.weather
    if w is not None:
        lines.append(
            f"- Current weather: {w.current.weather_description}, {w.current.temperature:.0f}°C; "
            f"next 24h {w.next_24h.min_temp}–{w.next_24h.max_temp}°C, "
            f"{w.next_24h.total_precipitation:.1f} mm precipitation"
        )
    else:
        lines.append("- Current weather: not available")

    if subject.wikipedia:
        lines.append(f"\nENCYCLOPEDIA SUMMARY:\n{subject.wikipedia}")
    else:
        lines.append("\nENCYCLOPEDIA SUMMARY: not available for this destination.")
    return "\n".join(lines)


def build_narrative_messages(
    subject: NarrativeSubject,
    other: NarrativeSubject | None = None,
) -> list[dict[str, str]]:
    """Chat messages for one destination, or two in comparison mode."""
    include_risks = subject.include_risks and (other is None or other.include_risks)
    if other is not None:
        # Risks appear only when both sides are country-level.
        mode = "country" if include_risks else "city-in-country"
        subject = replace(subject, mode=mode)
        other = replace(other, mode=mode)

    user = f"Write a travel briefing for {subject.destination}"
    if other is not None:
        user += f" compared with {other.destination}"
    user += ".\n\n" + _facts_block(subject, "DESTINATION")
    if other is not None:
        user += "\n\n" + _facts_block(other, "SECOND DESTINATION")

    return [
        {"role": "system", "content": _system_prompt(include_risks, other is not None)},
        {"role": "user", "content": user},
    ]


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def _client() -> AsyncOpenAI:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise NarrativeConfigError("OPENAI_API_KEY is not set. Add it to your .env to enable narratives.")
    return AsyncOpenAI(api_key=api_key, timeout=HTTP_TIMEOUT)


async def generate_narrative(
    subject: NarrativeSubject,
    other: NarrativeSubject | None = None,
) -> str:
    """Generate the briefing text.

    Raises:
        NarrativeConfigError: ``OPENAI_API_KEY`` is missing.
        NarrativeError: the model call failed or returned no text.
    """
    client = _client()
    messages = build_narrative_messages(subject, other)

    try:
        response = await client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=messages,
            max_tokens=NARRATIVE_MAX_TOKENS,
            temperature=0.7,
        )
    except OpenAIError as exc:
        raise NarrativeError(f"Narrative generation failed: {exc}") from exc

    text = (response.choices[0].message.content or "").strip() if response.choices else ""
    if not text:
        raise NarrativeError("Narrative generation returned no text")
    logger.info("Narrative generated for %s (%d chars)", subject.destination, len(text))
    return text
