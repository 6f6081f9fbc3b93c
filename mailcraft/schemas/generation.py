from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field

from mailcraft.db.models import Prompt
from mailcraft.domain.products import (
    GeneratedTemplate,
    GenerationResult,
    MultiProductGenerationResult,
    ProductInfo,
)


class ScrapeRequest(BaseModel):
    # A list in `url` is accepted as a multi-product request, same as `urls`.
    url: Optional[Union[str, list[str]]] = None
    urls: Optional[list[str]] = None
    promptIds: Optional[list[str]] = None

    def product_urls(self) -> Optional[list[str]]:
        if self.urls is not None:
            return self.urls
        if isinstance(self.url, list):
            return self.url
        return None


class ProductInfoResponse(BaseModel):
    title: str
    description: str
    price: str
    images: list[str] = Field(default_factory=list)
    bestImageUrl: str = ""

    @classmethod
    def from_domain(cls, product: ProductInfo) -> "ProductInfoResponse":
        return cls(
            title=product.title,
            description=product.description,
            price=product.price,
            images=list(product.images),
            bestImageUrl=product.best_image_url,
        )


class GeneratedTemplateResponse(BaseModel):
    subject: str
    html: str
    promptId: Optional[str] = None

    @classmethod
    def from_domain(cls, template: GeneratedTemplate) -> "GeneratedTemplateResponse":
        return cls(subject=template.subject, html=template.html, promptId=template.profile_id)


class GenerationResponse(BaseModel):
    productInfo: ProductInfoResponse
    templates: list[GeneratedTemplateResponse]
    imageRankingDegraded: bool = False

    @classmethod
    def from_domain(cls, result: GenerationResult) -> "GenerationResponse":
        return cls(
            productInfo=ProductInfoResponse.from_domain(result.product_info),
            templates=[GeneratedTemplateResponse.from_domain(template) for template in result.templates],
            imageRankingDegraded=result.image_ranking_degraded,
        )


class MultiProductGenerationResponse(BaseModel):
    productInfo: list[ProductInfoResponse]
    productUrls: list[str]
    templates: list[GeneratedTemplateResponse]
    imageRankingDegraded: bool = False
    degradedImageIndexes: list[int] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, result: MultiProductGenerationResult) -> "MultiProductGenerationResponse":
        return cls(
            productInfo=[ProductInfoResponse.from_domain(product) for product in result.products],
            productUrls=list(result.product_urls),
            templates=[GeneratedTemplateResponse.from_domain(template) for template in result.templates],
            imageRankingDegraded=bool(result.degraded_image_indexes),
            degradedImageIndexes=list(result.degraded_image_indexes),
        )


class PromptProfileResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    systemPrompt: str
    userPrompt: str
    model: Optional[str] = None
    isDefault: bool = False

    @classmethod
    def from_model(cls, prompt: Prompt) -> "PromptProfileResponse":
        return cls(
            id=prompt.id,
            name=prompt.name,
            description=prompt.description,
            systemPrompt=prompt.system_prompt,
            userPrompt=prompt.user_prompt,
            model=prompt.model,
            isDefault=prompt.is_default,
        )


class ActivePromptsResponse(BaseModel):
    prompts: list[PromptProfileResponse]
    total: int
