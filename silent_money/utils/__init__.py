"""Small pure helpers shared by services."""

from silent_money.utils.formatting import format_inr, format_inr_short
from silent_money.utils.slugs import idea_slug, name_slug

__all__ = ["format_inr", "format_inr_short", "idea_slug", "name_slug"]
