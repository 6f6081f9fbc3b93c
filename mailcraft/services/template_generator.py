from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Optional, Sequence

from mailcraft.config import settings
from mailcraft.domain.products import GeneratedTemplate, ProductInfo, PromptProfile
from mailcraft.errors import ConfigurationError
from mailcraft.llm.client import LLMClient, LLMGenerationParams
from mailcraft.llm.parsing import parse_json_object

logger = logging.getLogger(__name__)

MULTI_PRODUCT_DEFAULT_SUBJECT = "Multi-Product Email Template"

_RESPONSE_FORMAT_INSTRUCTION = """
Return a JSON object with:
{
    "subject": "Email subject line",
    "html": "Complete HTML email document"
}"""


def _fill_placeholders(template: str, replacements: dict[str, str]) -> str:
    for placeholder, value in replacements.items():
        template = template.replace(placeholder, value)
    return template


def render_user_instruction(profile: PromptProfile, product: ProductInfo, product_url: str) -> str:
    body = _fill_placeholders(
        profile.user_instruction_template,
        {
            "{{product_name}}": product.title,
            "{{title}}": product.title,
            "{{description}}": product.description,
            "{{price}}": product.price,
            "{{product_link}}": product_url,
            "{{image_url}}": product.best_image_url,
        },
    )
    details = (
        "\n\nProduct details:\n"
        f"Product Name: {product.title}\n"
        f"Description: {product.description}\n"
        f"Price: {product.price}\n"
        f"Product URL: {product_url}\n"
        f"Image URL: {product.best_image_url}\n"
    )
    return body + details + _RESPONSE_FORMAT_INSTRUCTION


def render_multi_product_instruction(
    profile: PromptProfile,
    products: Sequence[ProductInfo],
    product_urls: Sequence[str],
) -> str:
    """Interpolate a profile for a multi-product email.

    List placeholders are comma-joined in product order; the single-product
    placeholders resolve to the same joined values.
    """
    names = ", ".join(product.title for product in products)
    links = ", ".join(product_urls)
    images = ", ".join(product.best_image_url for product in products)
    prices = ", ".join(product.price for product in products)
    body = _fill_placeholders(
        profile.user_instruction_template,
        {
            "{{product_names}}": names,
            "{{product_links}}": links,
            "{{product_images}}": images,
            "{{product_prices}}": prices,
            "{{product_name}}": names,
            "{{title}}": names,
            "{{product_link}}": links,
            "{{image_url}}": images,
            "{{price}}": prices,
            "{{description}}": "",
        },
    )

    details = [f"\n\nProducts details ({len(products)} products):"]
    for index, product in enumerate(products):
        details.append(
            f"\nProduct {index + 1}:\n"
            f"Name: {product.title}\n"
            f"Description: {product.description}\n"
            f"Price: {product.price}\n"
            f"URL: {product_urls[index]}\n"
            f"Image: {product.best_image_url}\n"
        )
    details.append(
        "\nDesign one email that presents every product with its image, title, "
        "description, price and a call-to-action button linking to its URL.\n"
    )
    return body + "".join(details) + _RESPONSE_FORMAT_INSTRUCTION


def parse_template_response(raw: Optional[str], default_subject: str = "") -> Optional[GeneratedTemplate]:
    data = parse_json_object(raw)
    if data is None:
        return None
    html = data.get("html")
    if not isinstance(html, str) or not html.strip():
        return None
    subject = data.get("subject")
    if not isinstance(subject, str) or not subject:
        subject = default_subject
    return GeneratedTemplate(subject=subject, html=html)


def _generate_for_profile(
    client: LLMClient,
    profile: PromptProfile,
    user_instruction: str,
    default_subject: str,
) -> Optional[GeneratedTemplate]:
    params = LLMGenerationParams(model=profile.model or settings.LLM_TEMPLATE_MODEL, json_mode=True)
    raw = client.complete(profile.system_instruction, user_instruction, params)
    template = parse_template_response(raw, default_subject=default_subject)
    if template is None:
        logger.warning("Template response was not valid JSON", extra={"profile_id": profile.id})
        return None
    return GeneratedTemplate(subject=template.subject, html=template.html, profile_id=profile.id)


def _generate_for_profiles(
    profiles: Sequence[PromptProfile],
    render: Callable[[PromptProfile], str],
    *,
    llm: Optional[LLMClient],
    max_workers: Optional[int],
    default_subject: str = "",
) -> list[GeneratedTemplate]:
    """Run every profile concurrently; keep successes in profile order.

    A failing profile contributes nothing and never aborts the others. Configuration
    errors are not per-profile failures and propagate.
    """
    if not profiles:
        return []

    client = llm or LLMClient()
    worker_limit = max_workers or settings.TEMPLATE_GENERATION_MAX_CONCURRENCY
    results: list[Optional[GeneratedTemplate]] = [None] * len(profiles)

    with concurrent.futures.ThreadPoolExecutor(max_workers=min(worker_limit, len(profiles))) as pool:
        futures: dict[concurrent.futures.Future[Optional[GeneratedTemplate]], int] = {}
        for index, profile in enumerate(profiles):
            future = pool.submit(_generate_for_profile, client, profile, render(profile), default_subject)
            futures[future] = index
        for future in concurrent.futures.as_completed(futures):
            index = futures[future]
            try:
                results[index] = future.result()
            except ConfigurationError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Template generation failed for profile",
                    extra={"profile_id": profiles[index].id},
                )
                results[index] = None

    templates = [template for template in results if template is not None]
    logger.info(
        "Template generation finished",
        extra={"profile_count": len(profiles), "template_count": len(templates)},
    )
    return templates


def generate_templates(
    product: ProductInfo,
    product_url: str,
    profiles: Sequence[PromptProfile],
    *,
    llm: Optional[LLMClient] = None,
    max_workers: Optional[int] = None,
) -> list[GeneratedTemplate]:
    return _generate_for_profiles(
        profiles,
        lambda profile: render_user_instruction(profile, product, product_url),
        llm=llm,
        max_workers=max_workers,
    )


def generate_multi_product_templates(
    products: Sequence[ProductInfo],
    product_urls: Sequence[str],
    profiles: Sequence[PromptProfile],
    *,
    llm: Optional[LLMClient] = None,
    max_workers: Optional[int] = None,
) -> list[GeneratedTemplate]:
    """One email per profile covering all products, in the given product order."""
    return _generate_for_profiles(
        profiles,
        lambda profile: render_multi_product_instruction(profile, products, product_urls),
        llm=llm,
        max_workers=max_workers,
        default_subject=MULTI_PRODUCT_DEFAULT_SUBJECT,
    )
