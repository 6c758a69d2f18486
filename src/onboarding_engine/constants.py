"""Onboarding constants shared across the SDK.

These values are referenced by the engine, orchestrator, and content store.
They mirror conventions encoded in the YAML content under ``v1/``.

Several constants can be overridden via environment variables so that
deployments can change defaults without code changes.
"""

import os

# Languages and gender variants the content store can resolve text for.
SUPPORTED_LANGUAGES: tuple[str, ...] = ("he", "en", "ru")
SUPPORTED_GENDERS: tuple[str, ...] = ("male", "female", "neutral")

# Fallbacks used when the caller does not pass a language / gender.
# Overridable via DEFAULT_LANGUAGE / DEFAULT_GENDER env vars.
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "he")
DEFAULT_GENDER = os.getenv("DEFAULT_GENDER", "neutral")

# Partition loaded when a single questionnaire is started without one.
DEFAULT_PARTITION = os.getenv("DEFAULT_PARTITION", "assessment")

# When true, an answer with no terminal payload, no chain trigger, and no
# resolvable successor raises instead of ending the questionnaire silently.
STRICT_ROUTING = os.getenv("STRICT_ROUTING", "false").strip().lower() in ("1", "true", "yes")

# Joins questionnaire id and question id in aggregated answer keys,
# e.g. "push_assessment__q1".
ANSWER_NAMESPACE_SEPARATOR = "__"

# Layout types the rendering layer understands.  Admin tooling has
# historically stored Hebrew labels, so those are accepted as aliases.
DEFAULT_LAYOUT_TYPE = "large-card"
LAYOUT_TYPE_ALIASES: dict[str, str] = {
    "large-card": "large-card",
    "horizontal-list": "horizontal-list",
    "כרטיס גדול": "large-card",
    "רשימה אופקית": "horizontal-list",
}
