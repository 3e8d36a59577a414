"""
Derived listing fields.

Tags are computed on the write path before a listing is inserted or its
brand, model or location changes. Formatted price and listing age are
computed on the read path when a listing is presented.
"""

import math
import string
from datetime import datetime, timezone
from typing import List, Optional, Union

MIN_TAG_LENGTH = 3


def generate_tags(brand: Optional[str], model: Optional[str], location_text: Optional[str]) -> List[str]:
    """
    Build search tags from brand, model and location.

    Words are lower-cased, stripped of surrounding punctuation and kept when
    at least three characters long. Order of first appearance is preserved.

    Examples:
        generate_tags("Kirloskar", "KG1-62.5AS", "Mumbai, Maharashtra")
            -> ["kirloskar", "kg1-62.5as", "mumbai", "maharashtra"]
    """
    tags: List[str] = []
    for source in (brand, model, location_text):
        if not source:
            continue
        for word in source.lower().split():
            word = word.strip(string.punctuation)
            if len(word) >= MIN_TAG_LENGTH and word not in tags:
                tags.append(word)
    return tags


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_price(price: Union[int, float]) -> str:
    """
    Format a rupee amount with Indian digit grouping.

    Examples:
        format_price(850000) -> "₹8,50,000"
        format_price(1250000.5) -> "₹12,50,000.5"
    """
    price = round(price, 2)
    whole = int(math.floor(price))
    formatted = f"₹{_group_indian(str(whole))}"
    fraction = round(price - whole, 2)
    if fraction:
        formatted += f"{fraction:.2f}"[1:].rstrip("0")
    return formatted


def listing_age(created_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Describe how long ago a listing was created.

    Examples:
        1 day -> "1 day ago", 3 days -> "3 days ago",
        15 days -> "2 weeks ago", 65 days -> "2 months ago"
    """
    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    seconds = abs((now - created_at).total_seconds())
    days = math.ceil(seconds / 86400)

    if days == 1:
        return "1 day ago"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return f"{days // 30} months ago"
