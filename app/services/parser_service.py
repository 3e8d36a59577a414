import re
import logging
from typing import Dict, List, Optional, Tuple

from app.models.generator import (
    BRAND_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    MODEL_MAX_LENGTH,
    ParsedListing,
    ParseResult,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("brand", "model", "price", "hours", "location")


class ListingParser:
    """Rule-based extraction of generator listings from WhatsApp text.

    Sellers post a labeled template::

        Type: Used Generator
        Brand: Kirloskar
        Model: KG1-62.5AS
        Price: ₹8,50,000
        Hours: 12500
        Location: Mumbai, Maharashtra
        Contact: +91 98765 43210
        Description: Excellent condition

    The parser never raises; every problem ends up in ``ParseResult.errors``.
    """

    def __init__(self):
        # One labeled value per line
        self.line_patterns: Dict[str, re.Pattern] = {
            field: re.compile(rf"^[ \t]*{field}[ \t]*:[ \t]*(.+?)[ \t]*$", re.IGNORECASE | re.MULTILINE)
            for field in ("type", "brand", "model", "price", "hours", "location")
        }
        self.line_patterns["contact"] = re.compile(
            r"^[ \t]*contact[ \t]*:[ \t]*([0-9+][0-9+ \t()-]*?)[ \t]*$", re.IGNORECASE | re.MULTILINE
        )
        # Description runs until a blank line or the end of the text
        self.description_pattern = re.compile(
            r"^[ \t]*description[ \t]*:[ \t]*(.+?)(?:\r?\n[ \t\r]*\n|\Z)", re.IGNORECASE | re.MULTILINE | re.DOTALL
        )
        self.generator_keywords = re.compile(r"generator|genset|dg\s*set|diesel\s*generator", re.IGNORECASE)
        self.currency_tokens = re.compile(r"₹|\brs\.?|\binr\b|/-|[,\s]", re.IGNORECASE)
        self.separator_tokens = re.compile(r"[,\s]")

    def parse(self, text: str) -> ParseResult:
        """Parse a message into listing fields plus validation errors"""
        try:
            return self._parse(text)
        except Exception as e:
            logger.error("Error parsing generator listing: %s", e)
            fallback = text if isinstance(text, str) else ""
            return ParseResult(success=False, data=ParsedListing(description=fallback), errors=[f"Parsing error: {e}"])

    def _parse(self, text: str) -> ParseResult:
        fields = self._extract_fields(text)
        errors: List[str] = []

        for field in REQUIRED_FIELDS:
            if not fields.get(field):
                errors.append(f"Missing required field: {field}")

        price, price_error = self._parse_number(fields.get("price"), self.currency_tokens, "price", allow_zero=False)
        if price_error:
            errors.append(price_error)

        hours, hours_error = self._parse_number(fields.get("hours"), self.separator_tokens, "hours", allow_zero=True)
        if hours_error:
            errors.append(hours_error)

        errors.extend(self._check_lengths(fields))

        if not self._looks_like_generator_listing(text, fields):
            errors.append("Message does not appear to be a generator listing")

        data = ParsedListing(
            brand=fields.get("brand", ""),
            model=fields.get("model", ""),
            price=price or 0,
            hours_run=hours or 0,
            location_text=fields.get("location", ""),
            description=fields.get("description") or text,
            contact=fields.get("contact", ""),
        )
        return ParseResult(success=not errors, data=data, errors=errors)

    def _extract_fields(self, text: str) -> Dict[str, str]:
        fields: Dict[str, str] = {}
        for field, pattern in self.line_patterns.items():
            match = pattern.search(text)
            if match:
                fields[field] = match.group(1).strip()

        match = self.description_pattern.search(text)
        if match and match.group(1).strip():
            fields["description"] = match.group(1).strip()
        return fields

    def _parse_number(
        self, raw: Optional[str], strip_pattern: re.Pattern, name: str, allow_zero: bool
    ) -> Tuple[Optional[int], Optional[str]]:
        """Normalize a numeric field; returns (value, error)"""
        if not raw:
            return None, None

        cleaned = strip_pattern.sub("", raw)
        try:
            value = int(cleaned)
        except ValueError:
            return None, f"Invalid {name} format: {raw!r}"

        if value < 0 or (value == 0 and not allow_zero):
            return None, f"Invalid {name} format: {raw!r}"
        return value, None

    def _check_lengths(self, fields: Dict[str, str]) -> List[str]:
        errors = []
        for field, limit in (("brand", BRAND_MAX_LENGTH), ("model", MODEL_MAX_LENGTH), ("location", LOCATION_MAX_LENGTH)):
            value = fields.get(field)
            if value and len(value) > limit:
                errors.append(f"Field {field} exceeds {limit} characters")
        return errors

    def _looks_like_generator_listing(self, text: str, fields: Dict[str, str]) -> bool:
        """Check if text looks like a generator advertisement"""
        if self.generator_keywords.search(text):
            return True
        if "generator" in fields.get("type", "").lower():
            return True
        # A fully filled-in template without a type line counts as a listing on its own
        return "type" not in fields and all(fields.get(field) for field in REQUIRED_FIELDS)


listing_parser = ListingParser()


def parse_generator_listing(text: str) -> ParseResult:
    """Parse WhatsApp message text as a generator listing"""
    return listing_parser.parse(text)
