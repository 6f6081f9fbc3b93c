from __future__ import annotations

import json
import logging
import re
from typing import Optional, Sequence

from mailcraft.config import settings
from mailcraft.domain.products import RankedImage
from mailcraft.errors import ConfigurationError
from mailcraft.llm.client import LLMClient, LLMGenerationParams

logger = logging.getLogger(__name__)

RANKING_SYSTEM_INSTRUCTION = (
    "You are an expert in e-commerce and product photography. Your task is to select the best "
    "product image for an email advertisement."
)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def build_ranking_instruction(images: Sequence[str], title: str) -> str:
    return (
        f"Product: {title or 'unknown'}\n"
        "From these image URLs, select the index of the best one for an email advertisement. "
        f"The images are: {json.dumps(list(images))}. Respond with just the index number."
    )


def parse_index(text: Optional[str]) -> Optional[int]:
    """Read a leading integer the way a lenient parser would ("2", " 3.", "1 - front")."""
    if not text:
        return None
    match = _LEADING_INT_RE.match(text)
    if not match:
        return None
    return int(match.group(1))


def resolve_index(raw_index: Optional[int], image_count: int) -> tuple[int, bool]:
    """Clamp to a valid index; falls back to 0 and flags the fallback."""
    if raw_index is None or raw_index < 0 or raw_index >= image_count:
        return 0, True
    return raw_index, False


def rank_best_image(
    images: Sequence[str],
    title: str,
    *,
    llm: Optional[LLMClient] = None,
) -> RankedImage:
    if not images:
        return RankedImage(url="", index=None)

    client = llm or LLMClient()
    # Plain-text numeric answer; no JSON response format.
    params = LLMGenerationParams(model=settings.LLM_EXTRACTION_MODEL, json_mode=False)
    try:
        answer = client.complete(
            RANKING_SYSTEM_INSTRUCTION,
            build_ranking_instruction(images, title),
            params,
        )
    except ConfigurationError:
        raise
    except Exception:
        logger.exception("Image ranking call failed", extra={"image_count": len(images)})
        return RankedImage(url=images[0], index=0, degraded=True)

    index, degraded = resolve_index(parse_index(answer), len(images))
    if degraded:
        logger.warning(
            "Image ranking answer unusable; using first image",
            extra={"answer": (answer or "")[:64], "image_count": len(images)},
        )
    return RankedImage(url=images[index], index=index, degraded=degraded)
