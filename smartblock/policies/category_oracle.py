"""Static domain categorization.

Maps a normalized domain to exactly one CategoryLabel using built-in lists
plus whatever the config adds. No network access - designed for low-latency
inline classification.
"""

import logging
import threading
from collections.abc import Iterable, Iterator
from typing import Optional, Protocol

from smartblock.models import CategoryLabel

logger = logging.getLogger(__name__)


class CategoryOracle(Protocol):
    """Anything that can label a domain.

    Implementations should not raise, but the classifier copes if they do.
    """

    def classify(self, domain: str) -> CategoryLabel:
        ...


# Essential domains required for general web/app functionality.
# Entries that are also social-media domains are left out so the
# social rules apply to them.
WHITELISTED_DOMAINS: list[str] = [
    # Google core and static resources
    "google.com",
    "gstatic.com",
    "fonts.googleapis.com",
    "apis.google.com",
    "googleusercontent.com",
    # Cloudflare and CDNs
    "cloudflare.com",
    "cdnjs.cloudflare.com",
    "cdn.cloudflare.net",
    "jsdelivr.net",
    "cdnjs.com",
    "bootstrapcdn.com",
    "unpkg.com",
    "akamaized.net",
    "akamaitechnologies.com",
    # OpenAI
    "openai.com",
    "chatgpt.com",
    # Microsoft
    "microsoft.com",
    "login.microsoftonline.com",
    "live.com",
    "outlook.com",
    "office.com",
    "msn.com",
    # Apple
    "apple.com",
    "icloud.com",
    # Amazon
    "amazon.com",
    "images-amazon.com",
    "ssl-images-amazon.com",
    # GitHub
    "github.com",
    "githubusercontent.com",
    # Firebase
    "firebaseio.com",
    "firebaseapp.com",
    # Payments
    "stripe.com",
    # Miscellaneous essential
    "mozilla.org",
    "wikipedia.org",
    "wikimedia.org",
    "jquery.com",
    "gravatar.com",
    "adobe.com",
    "cdn.segment.com",
    "cdn.optimizely.com",
    "cdn.sift.com",
    "cdn.ampproject.org",
    "cdn.shopify.com",
    "cdn.shopifycdn.net",
    # DNS/Network
    "dns.google",
    "opendns.com",
    "cloudflare-dns.com",
]

# Main social sites: blocked on direct navigation
SOCIAL_PRIMARY_DOMAINS: list[str] = [
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "x.com",
    "tiktok.com",
    "snapchat.com",
    "discord.com",
    "discordapp.com",
    "reddit.com",
    "pinterest.com",
    "linkedin.com",
    "youtube.com",
    "youtu.be",
    "twitch.tv",
    "telegram.org",
    "t.me",
]

# APIs, CDNs and embeds: allowed when loaded by a legitimate page
SOCIAL_DEPENDENCY_DOMAINS: list[str] = [
    # Facebook/Meta
    "graph.facebook.com",
    "connect.facebook.net",
    "z-m-gateway.facebook.com",
    "fbcdn.net",
    "platform.instagram.com",
    # Twitter/X
    "twimg.com",
    "platform.twitter.com",
    # YouTube (not the main site)
    "ytimg.com",
    "youtube-nocookie.com",
    "googlevideo.com",
    # LinkedIn
    "platform.linkedin.com",
    "licdn.com",
    "linkedin.sc.omtrdc.net",
    # Pinterest
    "pinimg.com",
    "widgets.pinterest.com",
    # TikTok
    "byteoversea.com",
    "musical.ly",
    "tiktokcdn.com",
    # Reddit
    "redditmedia.com",
    "redditstatic.com",
    "redd.it",
    # Discord
    "discordapp.net",
    "discord.gg",
    "cdn.discordapp.com",
]

ADULT_DOMAINS: list[str] = [
    "pornhub.com",
    "xvideos.com",
    "xnxx.com",
    "redtube.com",
    "youporn.com",
    "tube8.com",
    "spankbang.com",
    "xhamster.com",
    "porn.com",
    "sex.com",
    "xxx.com",
    "adult.com",
    "nsfw.com",
    "brazzers.com",
    "bangbros.com",
    "reality-kings.com",
    "playboy.com",
    "penthouse.com",
    "hustler.com",
    "chaturbate.com",
    "cam4.com",
    "myfreecams.com",
    "livejasmin.com",
    "stripchat.com",
    "bongacams.com",
    "camsoda.com",
    "flirt4free.com",
    "adultfriendfinder.com",
    "ashley-madison.com",
    "seeking.com",
    "onlyfans.com",
    "manyvids.com",
    "clips4sale.com",
]

GAMING_DOMAINS: list[str] = [
    "steam.com",
    "steampowered.com",
    "steamcommunity.com",
    "epic-games.com",
    "epicgames.com",
    "fortnite.com",
    "battle.net",
    "blizzard.com",
    "activision.com",
    "roblox.com",
    "minecraft.net",
    "mojang.com",
    "xbox.com",
    "playstation.com",
]

# Matched at the start of a DNS label, so "sex" hits "sexshop.com"
# but not "essex.ac.uk"
ADULT_KEYWORDS: list[str] = [
    "porn",
    "sex",
    "xxx",
    "adult",
    "nude",
    "naked",
    "erotic",
    "explicit",
    "nsfw",
    "fetish",
    "webcam",
    "camgirl",
    "escort",
    "hookup",
    "milf",
    "hardcore",
    "softcore",
    "lingerie",
]


def _clean(domains: Iterable[str]) -> frozenset[str]:
    return frozenset(d.strip().lower().rstrip(".") for d in domains if d and d.strip())


def _domain_suffixes(domain: str) -> Iterator[str]:
    """Yield the domain and each parent: a.b.com, b.com, com."""
    labels = domain.split(".")
    for i in range(len(labels)):
        yield ".".join(labels[i:])


def matches_domain_list(domain: str, domains: frozenset[str]) -> bool:
    """Check for an exact or parent-domain match.

    "wikipedia.org" in the list matches "en.wikipedia.org" but not
    "notwikipedia.org".
    """
    return any(suffix in domains for suffix in _domain_suffixes(domain))


def matches_keyword_at_label_boundary(domain: str, keyword: str) -> bool:
    """Check whether any label of the domain starts with the keyword."""
    keyword = keyword.lower()
    return any(label.startswith(keyword) for label in domain.lower().split("."))


class StaticCategoryOracle:
    """Category oracle backed by in-memory domain lists.

    Precedence, first match wins:
    1. Whitelist
    2. Social-media dependency (checked before primary since most
       dependencies are subdomains of a primary site)
    3. Social-media primary
    4. Blocked domains (adult content, gaming if enabled, extras)
    5. Blocked keywords
    6. Unclassified

    A leading "www." is ignored for matching. Blocked-domain lists can be
    edited at runtime; edits swap in new frozensets so readers never need
    a lock.
    """

    def __init__(
        self,
        whitelist: Optional[Iterable[str]] = None,
        social_primary: Optional[Iterable[str]] = None,
        social_dependency: Optional[Iterable[str]] = None,
        blocked_domains: Optional[Iterable[str]] = None,
        blocked_keywords: Optional[Iterable[str]] = None,
        block_adult_content: bool = True,
        block_gaming: bool = False,
    ) -> None:
        """Initialize the oracle.

        Args:
            whitelist: Extra always-allowed domains
            social_primary: Extra primary social domains
            social_dependency: Extra social dependency domains
            blocked_domains: Extra restricted domains
            blocked_keywords: Extra restricted keywords
            block_adult_content: Include the built-in adult lists
            block_gaming: Include the built-in gaming list
        """
        self.block_adult_content = block_adult_content
        self.block_gaming = block_gaming

        self._whitelist = _clean([*WHITELISTED_DOMAINS, *(whitelist or [])])
        self._social_primary = _clean([*SOCIAL_PRIMARY_DOMAINS, *(social_primary or [])])
        self._social_dependency = _clean([*SOCIAL_DEPENDENCY_DOMAINS, *(social_dependency or [])])

        blocked = list(blocked_domains or [])
        keywords = [k.lower() for k in blocked_keywords or [] if k]
        if block_adult_content:
            blocked.extend(ADULT_DOMAINS)
            keywords.extend(ADULT_KEYWORDS)
        if block_gaming:
            blocked.extend(GAMING_DOMAINS)

        self._blocked = _clean(blocked)
        self._keywords = tuple(dict.fromkeys(keywords))
        self._write_lock = threading.Lock()

        logger.info(
            f"Initialized category oracle with {len(self._blocked)} blocked domains "
            f"and {len(self._keywords)} blocked keywords "
            f"(adult: {block_adult_content}, gaming: {block_gaming})"
        )

    @classmethod
    def from_config(cls, config) -> "StaticCategoryOracle":
        """Build an oracle from a loaded smartblock Config."""
        return cls(
            whitelist=config.whitelist,
            social_primary=config.social_primary,
            social_dependency=config.social_dependency,
            blocked_domains=config.blocked_domains,
            blocked_keywords=config.blocked_keywords,
            block_adult_content=config.block_adult_content,
            block_gaming=config.block_gaming,
        )

    def classify(self, domain: str) -> CategoryLabel:
        """Label a normalized domain.

        Args:
            domain: Lowercase hostname (e.g., "graph.facebook.com")

        Returns:
            The CategoryLabel of the first matching list
        """
        check = domain.lower()
        if check.startswith("www."):
            check = check[4:]

        if matches_domain_list(check, self._whitelist):
            return CategoryLabel.WHITELISTED
        if matches_domain_list(check, self._social_dependency):
            return CategoryLabel.SOCIAL_DEPENDENCY
        if matches_domain_list(check, self._social_primary):
            return CategoryLabel.SOCIAL_PRIMARY
        if matches_domain_list(check, self._blocked):
            return CategoryLabel.RESTRICTED_OTHER

        for keyword in self._keywords:
            if matches_keyword_at_label_boundary(check, keyword):
                logger.debug(f"Keyword match: {domain} contains '{keyword}'")
                return CategoryLabel.RESTRICTED_OTHER

        return CategoryLabel.UNCLASSIFIED

    def add_blocked_domain(self, domain: str) -> None:
        """Add a domain to the restricted list."""
        if not domain or not domain.strip():
            return
        with self._write_lock:
            self._blocked = self._blocked | _clean([domain])
        logger.debug(f"Added blocked domain: {domain}")

    def remove_blocked_domain(self, domain: str) -> None:
        """Remove a domain from the restricted list (no-op if absent)."""
        if not domain:
            return
        with self._write_lock:
            self._blocked = self._blocked - _clean([domain])
        logger.debug(f"Removed blocked domain: {domain}")

    def add_whitelisted_domain(self, domain: str) -> None:
        """Exempt a domain from all blocking rules."""
        if not domain or not domain.strip():
            return
        with self._write_lock:
            self._whitelist = self._whitelist | _clean([domain])
        logger.debug(f"Added whitelisted domain: {domain}")

    @property
    def blocked_domains(self) -> set[str]:
        """Return a copy of the current restricted domain list."""
        return set(self._blocked)

    def category_sizes(self) -> dict[str, int]:
        """Return the number of entries behind each category."""
        return {
            CategoryLabel.WHITELISTED.value: len(self._whitelist),
            CategoryLabel.SOCIAL_PRIMARY.value: len(self._social_primary),
            CategoryLabel.SOCIAL_DEPENDENCY.value: len(self._social_dependency),
            CategoryLabel.RESTRICTED_OTHER.value: len(self._blocked),
            "restricted_keywords": len(self._keywords),
        }
