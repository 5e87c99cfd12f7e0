"""
edgeprobe/patterns.py – classification tables used by discovery.

Every table is an ordered list of ``(substring, tag)`` pairs. Tables consumed
with :func:`first_match` are order sensitive: the first row whose substring
occurs in the subject wins, regardless of how specific a later row is.
Tables consumed with :func:`find_all` collect every tag that matches.
"""

from __future__ import annotations

from typing import Iterable, Sequence, TypeVar

from edgeprobe.state import AuthType, Category

T = TypeVar("T")

PatternTable = Sequence[tuple[str, T]]


# ── Category by unit name (first match, case-insensitive) ─────────────────────

CATEGORY_PATTERNS: list[tuple[str, Category]] = [
    # Core
    ("_health", Category.CORE),
    ("health", Category.CORE),
    # User management
    ("list-users", Category.USER_MANAGEMENT),
    ("update-user", Category.USER_MANAGEMENT),
    ("user-", Category.USER_MANAGEMENT),
    # Barcode & food
    ("lookup-barcode", Category.BARCODE),
    ("enrich-barcode", Category.BARCODE),
    ("identify-food", Category.BARCODE),
    ("calculate-food", Category.BARCODE),
    # AI sits ahead of meal planning: "ai-meal-plan" is an AI unit
    ("test-ai", Category.AI),
    ("ai-", Category.AI),
    # Meal planning
    ("meal-", Category.MEAL_PLANNING),
    ("suggest-food", Category.MEAL_PLANNING),
    ("suggest-recipe", Category.MEAL_PLANNING),
    ("parse-recipe", Category.MEAL_PLANNING),
    ("manage-meal", Category.MEAL_PLANNING),
    ("schedule-meal", Category.MEAL_PLANNING),
    # Weekly reports
    ("weekly-", Category.WEEKLY_REPORTS),
    ("generate-weekly", Category.WEEKLY_REPORTS),
    ("schedule-weekly", Category.WEEKLY_REPORTS),
    # Blog & content
    ("blog", Category.BLOG),
    ("generate-blog", Category.BLOG),
    ("update-blog", Category.BLOG),
    ("manage-blog", Category.BLOG),
    ("publish-scheduled", Category.BLOG),
    ("generate-schema", Category.BLOG),
    ("generate-social", Category.BLOG),
    ("repurpose-content", Category.BLOG),
    ("test-blog", Category.BLOG),
    # Email
    ("send-email", Category.EMAIL),
    ("send-auth", Category.EMAIL),
    ("process-email", Category.EMAIL),
    ("email", Category.EMAIL),
    # Payment
    ("checkout", Category.PAYMENT),
    ("stripe", Category.PAYMENT),
    ("subscription", Category.PAYMENT),
    ("payment", Category.PAYMENT),
    ("invoice", Category.PAYMENT),
    ("oauth-token", Category.PAYMENT),
    # SEO
    ("seo", Category.SEO),
    ("sitemap", Category.SEO),
    ("analyze-blog", Category.SEO),
    ("check-", Category.SEO),
    ("crawl", Category.SEO),
    ("detect-", Category.SEO),
    ("analyze-", Category.SEO),
    ("optimize-", Category.SEO),
    ("validate-", Category.SEO),
    ("sync-backlinks", Category.SEO),
    ("track-serp", Category.SEO),
    ("monitor-", Category.SEO),
    ("run-scheduled", Category.SEO),
    ("apply-seo", Category.SEO),
    # Analytics
    ("sync-analytics", Category.ANALYTICS),
    ("ga4", Category.ANALYTICS),
    ("gsc", Category.ANALYTICS),
    ("bing", Category.ANALYTICS),
    ("yandex", Category.ANALYTICS),
    ("track-engagement", Category.ANALYTICS),
    # Delivery
    ("delivery", Category.DELIVERY),
    ("process-delivery", Category.DELIVERY),
    # Notifications
    ("notification", Category.NOTIFICATIONS),
    ("push", Category.NOTIFICATIONS),
    ("register-push", Category.NOTIFICATIONS),
    # Misc
    ("join-waitlist", Category.MISC),
    ("backup", Category.MISC),
    ("intelligence", Category.MISC),
    ("support", Category.MISC),
]


# ── Auth type by unit name (first match, case-insensitive) ────────────────────

AUTH_NAME_PATTERNS: list[tuple[str, AuthType]] = [
    ("_health", AuthType.NONE),
    ("join-waitlist", AuthType.NONE),
    ("lookup-barcode", AuthType.NONE),
    ("suggest-", AuthType.NONE),
    ("generate-sitemap", AuthType.ANONYMOUS_KEY),
    ("generate-schema", AuthType.NONE),
    ("generate-social", AuthType.NONE),
    ("analyze-content", AuthType.NONE),
    ("check-mobile", AuthType.NONE),
    ("check-security", AuthType.NONE),
    ("detect-redirect", AuthType.NONE),
    ("analyze-images", AuthType.NONE),
    ("list-users", AuthType.PRIVILEGED_KEY),
    ("update-user", AuthType.PRIVILEGED_KEY),
    ("send-emails", AuthType.PRIVILEGED_KEY),
    ("process-email", AuthType.PRIVILEGED_KEY),
    ("generate-weekly", AuthType.PRIVILEGED_KEY),
    ("backup-", AuthType.PRIVILEGED_KEY),
    ("test-ai-config", AuthType.PRIVILEGED_KEY),
    ("stripe-webhook", AuthType.NONE),  # verified by webhook signature instead
    ("publish-scheduled", AuthType.SCHEDULER_SECRET),
    ("run-scheduled", AuthType.SCHEDULER_SECRET),
    ("process-notification", AuthType.SCHEDULER_SECRET),
    ("ga4-oauth", AuthType.OAUTH),
    ("gsc-oauth", AuthType.OAUTH),
    ("bing-webmaster", AuthType.OAUTH),
    ("yandex-webmaster", AuthType.OAUTH),
]


# ── Auth type by source text (first match, case-sensitive) ───────────────────
# Order is the documented precedence: privileged key, scheduler secret,
# then any generic authorization check.

AUTH_CONTENT_PATTERNS: list[tuple[str, AuthType]] = [
    ("service_role", AuthType.PRIVILEGED_KEY),
    ("SUPABASE_SERVICE_ROLE_KEY", AuthType.PRIVILEGED_KEY),
    ("cronSecret", AuthType.SCHEDULER_SECRET),
    ("CRON_SECRET", AuthType.SCHEDULER_SECRET),
    ("auth.uid()", AuthType.BEARER_TOKEN),
    ("Authorization", AuthType.BEARER_TOKEN),
]

DEFAULT_AUTH_TYPE = AuthType.BEARER_TOKEN


# ── HTTP method checks in source text (find all) ──────────────────────────────

METHOD_IDIOMS: list[tuple[str, str]] = [
    ("method === 'GET'", "GET"),
    ('req.method === "GET"', "GET"),
    ("method === 'POST'", "POST"),
    ('req.method === "POST"', "POST"),
    ("method === 'PUT'", "PUT"),
    ('req.method === "PUT"', "PUT"),
    ("method === 'DELETE'", "DELETE"),
    ('req.method === "DELETE"', "DELETE"),
]

FALLBACK_METHOD = "POST"


# ── Third-party services referenced in source text (find all) ─────────────────

EXTERNAL_API_PATTERNS: list[tuple[str, str]] = [
    ("api.openai.com", "OpenAI"),
    ("OPENAI_API_KEY", "OpenAI"),
    ("api.anthropic.com", "Anthropic/Claude"),
    ("ANTHROPIC_API_KEY", "Anthropic/Claude"),
    ("generativelanguage.googleapis.com", "Google Gemini"),
    ("GEMINI_API_KEY", "Google Gemini"),
    ("stripe.com", "Stripe"),
    ("STRIPE", "Stripe"),
    ("resend.com", "Resend"),
    ("RESEND_API_KEY", "Resend"),
    ("openfoodfacts.org", "Open Food Facts"),
    ("api.nal.usda.gov", "USDA FoodData Central"),
    ("USDA", "USDA FoodData Central"),
    ("googleapis.com/analytics", "Google Analytics"),
    ("searchconsole.googleapis.com", "Google Search Console"),
    ("ahrefs.com", "Ahrefs"),
    ("moz.com", "Moz"),
]


# ── Scheduling hints in name or source (any, case-insensitive) ────────────────

CRON_INDICATORS: list[str] = [
    "cronSecret",
    "CRON_SECRET",
    "schedule",
    "process-",
    "run-scheduled",
    "publish-scheduled",
]


def first_match(
    table: PatternTable[T],
    subject: str,
    *,
    ignore_case: bool = True,
) -> T | None:
    """Return the tag of the first row whose substring occurs in ``subject``."""
    haystack = subject.lower() if ignore_case else subject
    for needle, tag in table:
        if (needle.lower() if ignore_case else needle) in haystack:
            return tag
    return None


def find_all(
    table: PatternTable[T],
    subject: str,
    *,
    ignore_case: bool = False,
) -> list[T]:
    """Return every matching tag once, in table order."""
    haystack = subject.lower() if ignore_case else subject
    found: list[T] = []
    for needle, tag in table:
        if tag in found:
            continue
        if (needle.lower() if ignore_case else needle) in haystack:
            found.append(tag)
    return found


def contains_any(indicators: Iterable[str], *subjects: str) -> bool:
    """Case-insensitive: does any indicator occur in any of the subjects?"""
    lowered = [s.lower() for s in subjects]
    return any(ind.lower() in s for ind in indicators for s in lowered)
