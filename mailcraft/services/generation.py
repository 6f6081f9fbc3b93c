from __future__ import annotations

import concurrent.futures
import logging
from typing import Optional, Sequence

from mailcraft.config import settings
from mailcraft.db.models import Prompt
from mailcraft.domain.products import (
    GenerationResult,
    MultiProductGenerationResult,
    ProductInfo,
    PromptProfile,
    ResolvedProduct,
)
from mailcraft.errors import InvalidInputError
from mailcraft.llm.client import LLMClient
from mailcraft.services.extractor import extract_product_info
from mailcraft.services.image_ranker import rank_best_image
from mailcraft.services.scraper import fetch_page, normalize_product_url
from mailcraft.services.template_generator import generate_multi_product_templates, generate_templates

logger = logging.getLogger(__name__)


def profile_from_prompt(prompt: Prompt) -> PromptProfile:
    return PromptProfile(
        id=prompt.id,
        name=prompt.name,
        system_instruction=prompt.system_prompt,
        user_instruction_template=prompt.user_prompt,
        model=prompt.model or None,
    )


def resolve_product(url: Optional[str], *, llm: LLMClient) -> ResolvedProduct:
    """Scrape one page, extract its fields and pick its best image."""
    page = fetch_page(url)
    extracted = extract_product_info(page.url, page_text=page.text, llm=llm)
    ranked = rank_best_image(page.images, extracted.title, llm=llm)
    product = ProductInfo(
        title=extracted.title,
        description=extracted.description,
        price=extracted.price,
        images=page.images,
        best_image_url=ranked.url,
    )
    return ResolvedProduct(url=page.url, product=product, image_ranking_degraded=ranked.degraded)


def generate_from_url(
    url: Optional[str],
    profiles: Sequence[PromptProfile],
    *,
    llm: Optional[LLMClient] = None,
) -> GenerationResult:
    """Scrape, extract, rank, then fan out one template per profile.

    Scraping and configuration errors escape; other extraction and ranking failures
    degrade to empty values.
    """
    client = llm or LLMClient()
    resolved = resolve_product(url, llm=client)
    templates = generate_templates(resolved.product, resolved.url, profiles, llm=client)
    logger.info(
        "Generated templates from product URL",
        extra={
            "url": resolved.url,
            "profile_count": len(profiles),
            "template_count": len(templates),
            "image_ranking_degraded": resolved.image_ranking_degraded,
        },
    )
    return GenerationResult(
        product_info=resolved.product,
        templates=tuple(templates),
        image_ranking_degraded=resolved.image_ranking_degraded,
    )


def _normalize_product_urls(urls: Sequence[Optional[str]]) -> list[str]:
    if not urls:
        raise InvalidInputError("URL is required")
    if len(urls) > settings.SCRAPER_MAX_URLS:
        raise InvalidInputError(f"At most {settings.SCRAPER_MAX_URLS} product URLs are allowed")
    return [normalize_product_url(url) for url in urls]


def resolve_products(urls: Sequence[Optional[str]], *, llm: LLMClient) -> list[ResolvedProduct]:
    """Resolve every URL concurrently; results follow input order.

    Every URL is validated before anything is fetched. Any page failure aborts the
    whole batch.
    """
    product_urls = _normalize_product_urls(urls)
    results: list[Optional[ResolvedProduct]] = [None] * len(product_urls)
    worker_count = min(settings.SCRAPER_MAX_CONCURRENCY, len(product_urls))

    with concurrent.futures.ThreadPoolExecutor(max_workers=worker_count) as pool:
        futures = {
            pool.submit(resolve_product, product_url, llm=llm): index
            for index, product_url in enumerate(product_urls)
        }
        for future in concurrent.futures.as_completed(futures):
            results[futures[future]] = future.result()

    return [result for result in results if result is not None]


def generate_from_urls(
    urls: Sequence[Optional[str]],
    profiles: Sequence[PromptProfile],
    *,
    llm: Optional[LLMClient] = None,
) -> MultiProductGenerationResult:
    """Resolve several product pages, then fan out one multi-product template per profile."""
    client = llm or LLMClient()
    resolved = resolve_products(urls, llm=client)
    products = [item.product for item in resolved]
    product_urls = [item.url for item in resolved]
    degraded = tuple(index for index, item in enumerate(resolved) if item.image_ranking_degraded)

    templates = generate_multi_product_templates(products, product_urls, profiles, llm=client)
    logger.info(
        "Generated multi-product templates",
        extra={
            "url_count": len(product_urls),
            "profile_count": len(profiles),
            "template_count": len(templates),
            "degraded_image_count": len(degraded),
        },
    )
    return MultiProductGenerationResult(
        products=tuple(products),
        product_urls=tuple(product_urls),
        templates=tuple(templates),
        degraded_image_indexes=degraded,
    )
