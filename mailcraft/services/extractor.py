from __future__ import annotations

import logging
from typing import Optional

from mailcraft.config import settings
from mailcraft.domain.products import ExtractedProduct
from mailcraft.errors import ConfigurationError
from mailcraft.llm.client import LLMClient, LLMGenerationParams
from mailcraft.llm.parsing import parse_json_object

logger = logging.getLogger(__name__)

EXTRACTION_SYSTEM_INSTRUCTION = (
    "You are an expert in e-commerce product information extraction. Analyze the provided "
    "product page and extract product information. Only extract actual product information, "
    "not navigation or footer content."
)

_EXTRACTION_USER_TEMPLATE = """Extract the product information for this product page.

Product URL: {url}
Page content: "{page_text}"

Return a JSON object with exactly these keys:
{{
    "title": "Product title/name",
    "description": "Product description (max 200 characters)",
    "price": "Current price including currency (empty string if not found)"
}}

If any information is not found, return an empty string for that field."""


def build_extraction_instruction(url: str, page_text: Optional[str] = None) -> str:
    return _EXTRACTION_USER_TEMPLATE.format(url=url, page_text=page_text or "")


def _coerce_field(value: object) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def extract_product_info(
    url: str,
    *,
    page_text: Optional[str] = None,
    llm: Optional[LLMClient] = None,
) -> ExtractedProduct:
    """Ask the model for title/description/price.

    Provider errors and unparseable answers yield empty fields; partial product
    data is still usable downstream. Configuration errors propagate.
    """
    client = llm or LLMClient()
    params = LLMGenerationParams(model=settings.LLM_EXTRACTION_MODEL, json_mode=True)
    try:
        raw = client.complete(
            EXTRACTION_SYSTEM_INSTRUCTION,
            build_extraction_instruction(url, page_text),
            params,
        )
    except ConfigurationError:
        raise
    except Exception:
        logger.exception("Product extraction call failed", extra={"url": url})
        return ExtractedProduct()

    data = parse_json_object(raw)
    if data is None:
        logger.warning("Product extraction returned invalid JSON", extra={"url": url})
        return ExtractedProduct()

    return ExtractedProduct(
        title=_coerce_field(data.get("title")),
        description=_coerce_field(data.get("description")),
        price=_coerce_field(data.get("price")),
    )
