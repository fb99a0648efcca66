"""
Team name normalization boundary

Alias resolution lives outside the contest engine. The catalog and ledgers
only need ``normalize`` / ``normalize_batch``; anything with those two
methods can be handed to them. Unknown names always pass through unchanged.
"""

import logging

logger = logging.getLogger(__name__)


class PassThroughNormalizer:
    """Default normalizer: trims whitespace and nothing else"""

    def normalize(self, name):
        if name is None:
            return ""
        return name.strip()

    def normalize_batch(self, names):
        result = {}
        for name in names:
            if not name or not name.strip():
                continue
            result.setdefault(name.strip(), self.normalize(name))
        return result


class AliasNormalizer(PassThroughNormalizer):
    """Adapter over an alias -> canonical name mapping supplied by the caller"""

    def __init__(self, aliases):
        # Case-insensitive lookups
        self.aliases = {alias.strip().lower(): canonical for alias, canonical in aliases.items()}

    def normalize(self, name):
        trimmed = super().normalize(name)
        if not trimmed:
            return trimmed

        canonical = self.aliases.get(trimmed.lower())
        if canonical is None:
            logger.warning(
                f"Unknown team '{trimmed}' - no alias mapping found. Passing through unchanged."
            )
            return trimmed

        if canonical.lower() != trimmed.lower():
            logger.debug(f"Normalized team name '{trimmed}' to '{canonical}'")
        return canonical


default_normalizer = PassThroughNormalizer()
