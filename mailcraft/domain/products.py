from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ScrapedPage:
    url: str
    text: str
    images: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractedProduct:
    title: str = ""
    description: str = ""
    price: str = ""


@dataclass(frozen=True)
class RankedImage:
    url: str
    index: Optional[int]
    # True when the ranking call failed or answered with an unusable index.
    degraded: bool = False


@dataclass(frozen=True)
class ProductInfo:
    title: str
    description: str
    price: str
    images: tuple[str, ...] = field(default_factory=tuple)
    best_image_url: str = ""


@dataclass(frozen=True)
class PromptProfile:
    id: str
    system_instruction: str
    user_instruction_template: str
    name: str = ""
    model: Optional[str] = None


@dataclass(frozen=True)
class GeneratedTemplate:
    subject: str
    html: str
    profile_id: Optional[str] = None


@dataclass(frozen=True)
class GenerationResult:
    product_info: ProductInfo
    templates: tuple[GeneratedTemplate, ...]
    image_ranking_degraded: bool = False


@dataclass(frozen=True)
class ResolvedProduct:
    """One scraped, extracted and ranked product page."""

    url: str
    product: ProductInfo
    image_ranking_degraded: bool = False


@dataclass(frozen=True)
class MultiProductGenerationResult:
    products: tuple[ProductInfo, ...]
    product_urls: tuple[str, ...]
    templates: tuple[GeneratedTemplate, ...]
    # Indexes into `products` whose best image came from the ranking fallback.
    degraded_image_indexes: tuple[int, ...] = ()
