"""Item validation: decide which collection items may be submitted for indexing.

Rules are applied in order and the first failing rule rejects the item:

1. id is at most 512 characters
2. locator is at most 2000 characters
3. locator starts with ``http://`` or ``https://``
4. the domain (text between the scheme and the first ``/``) is non-empty,
   at most 256 characters, and either ends with an allowed suffix or equals
   an allowed host

Rejected items are dropped, never raised. Input order is preserved and
duplicate ids are passed through unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from models import Item, ValidatedItem

logger = logging.getLogger(__name__)

MAX_ID_CHARS = 512
MAX_LOCATOR_CHARS = 2000
MAX_DOMAIN_CHARS = 256
SCHEMES = ("http://", "https://")


@dataclass(frozen=True)
class DomainRules:
    suffixes: tuple[str, ...] = (".discordapp.net",)
    hosts: tuple[str, ...] = ("media.tenor.co",)

    def allows(self, domain: str) -> bool:
        return domain in self.hosts or any(domain.endswith(s) for s in self.suffixes)


DEFAULT_RULES = DomainRules()


def extract_domain(locator: str) -> str | None:
    """Return the domain of an http(s) locator, or None for any other scheme.

    Examples:
        >>> extract_domain("https://media.tenor.co/x/y.gif")
        'media.tenor.co'
        >>> extract_domain("http://cdn.discordapp.net")
        'cdn.discordapp.net'
        >>> extract_domain("ftp://media.tenor.co/x") is None
        True
    """
    for scheme in SCHEMES:
        if locator.startswith(scheme):
            rest = locator[len(scheme) :]
            return rest.split("/", 1)[0]
    return None


def rejection_reason(item: Item, rules: DomainRules = DEFAULT_RULES) -> str | None:
    """Return why an item is rejected, or None if it is valid."""
    if len(item.id) > MAX_ID_CHARS:
        return f"id has {len(item.id)} > {MAX_ID_CHARS} characters"
    if len(item.locator) > MAX_LOCATOR_CHARS:
        return f"locator has {len(item.locator)} > {MAX_LOCATOR_CHARS} characters"
    domain = extract_domain(item.locator)
    if domain is None:
        return f"invalid locator scheme: {item.locator[:64]}"
    if not domain or len(domain) > MAX_DOMAIN_CHARS or not rules.allows(domain):
        return f"invalid domain: {domain[:64]}"
    return None


def is_valid_item(item: Item, rules: DomainRules = DEFAULT_RULES) -> bool:
    return rejection_reason(item, rules) is None


def validate_items(items: Iterable[Item], rules: DomainRules = DEFAULT_RULES) -> list[ValidatedItem]:
    valid: list[ValidatedItem] = []
    for item in items:
        reason = rejection_reason(item, rules)
        if reason is not None:
            logger.debug("Skipping %s: %s", item.id[:64], reason)
            continue
        valid.append(ValidatedItem(id=item.id, locator=item.locator))
    return valid


__all__ = [
    "DomainRules",
    "DEFAULT_RULES",
    "extract_domain",
    "rejection_reason",
    "is_valid_item",
    "validate_items",
]
