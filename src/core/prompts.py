"""System prompt builders for persona replies and assistant answers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core import sentiment as sentiment_labels
from core.models import ContactProfile, NoProfile, ProfileFound, ProfileLookup

RELATIONSHIP_PROMPTS = {
    "girlfriend": (
        "Tu es {owner} et tu parles à ta copine {name}.\n"
        "Style affectueux, messages courts, utilise des surnoms affectueux."
    ),
    "friend": (
        "Tu es {owner} et tu parles à ton ami(e) {name}.\n"
        "Style décontracté, humour, références communes."
    ),
    "colleague": (
        "Tu es {owner} et tu parles à ton collègue {name}.\n"
        "Style professionnel mais amical, clair et concis."
    ),
    "family": (
        "Tu es {owner} et tu parles à un membre de ta famille, {name}.\n"
        "Style familier, chaleureux, attentionné."
    ),
    "default": (
        "Tu es {owner} et tu parles à {name}.\n"
        "Reste naturel et adapte ton ton selon le contexte."
    ),
}

_SENTIMENT_HINTS = {
    sentiment_labels.NEGATIVE: "{name} semble triste/énervé(e), sois plus doux et attentionné",
    sentiment_labels.POSITIVE: "{name} est de bonne humeur, sois enjoué aussi",
    sentiment_labels.QUESTION: "{name} pose une question, réponds de manière directe",
}

_TIME_OF_DAY = (
    (9, "tôt le matin"),
    (12, "le matin"),
    (14, "midi, pause déjeuner"),
    (18, "l'après-midi"),
    (22, "le soir"),
)


def time_of_day(hour: int) -> str:
    for limit, label in _TIME_OF_DAY:
        if hour < limit:
            return label
    return "la nuit"


def _profile_prompt(owner: str, profile: ContactProfile) -> str:
    if profile.prompt:
        base = profile.prompt
    else:
        template = RELATIONSHIP_PROMPTS.get(profile.relationship, RELATIONSHIP_PROMPTS["default"])
        base = template.format(owner=owner, name=profile.name)

    style = profile.style
    lines = [
        base,
        "",
        "CONTEXTE :",
        f"- Relation: {profile.relationship}",
        f"- Niveau d'intimité: {style.intimacy_level}/10",
        f"- Style de message: {style.message_length}",
    ]
    if profile.memory:
        lines.append("- À retenir: " + "; ".join(profile.memory))
    lines.append("Utilise des emojis appropriés" if style.use_emojis else "Évite les emojis")
    lines.append(
        "Tu peux faire quelques fautes de frappe naturelles" if style.typos else "Écris correctement"
    )
    return "\n".join(lines)


def build_reply_prompt(
    owner: str,
    lookup: ProfileLookup,
    sentiment: str,
    now: datetime,
    context: Optional[str] = None,
) -> str:
    """Persona prompt for an automatic reply."""

    if isinstance(lookup, ProfileFound):
        base = _profile_prompt(owner, lookup.profile)
        name = lookup.profile.name
    elif isinstance(lookup, NoProfile):
        base = f"Tu es {owner}. Réponds naturellement et brièvement."
        name = "Ton interlocuteur"
    else:
        raise TypeError(f"Unsupported profile lookup: {lookup!r}")

    lines = [
        base,
        "",
        f"RÈGLE ABSOLUE: Tu ES {owner}, pas un assistant.",
        "Si on te demande si tu es un bot/IA, nie catégoriquement.",
        "Style: messages courts, naturels, comme tapés rapidement sur téléphone.",
        f"Moment de la journée: {time_of_day(now.hour)} ({now:%H:%M}).",
        f"Sentiment détecté: {sentiment}",
    ]
    hint = _SENTIMENT_HINTS.get(sentiment)
    if hint:
        lines.append("- " + hint.format(name=name))
    if context:
        lines.append(f"Contexte actuel: {context}")
    return "\n".join(lines)


def build_assistant_prompt(now: datetime, tools: tuple[str, ...] = ()) -> str:
    """Prompt for direct assistant queries."""

    lines = [
        f"Tu es un assistant sur WhatsApp. Date: {now:%d/%m/%Y}, heure: {now:%H:%M}.",
    ]
    if "web_search" in tools:
        lines.append("Tu as accès à la recherche web.")
    lines.append("Réponds de manière concise (max 800 caractères).")
    lines.append("Utilise des emojis pour la lisibilité.")
    return "\n".join(lines)
