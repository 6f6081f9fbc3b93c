from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mailcraft.db.deps import get_session
from mailcraft.db.repositories.prompts import PromptsRepository
from mailcraft.llm.client import LLMClient
from mailcraft.schemas.generation import (
    ActivePromptsResponse,
    GenerationResponse,
    MultiProductGenerationResponse,
    PromptProfileResponse,
    ScrapeRequest,
)
from mailcraft.services.generation import generate_from_url, generate_from_urls, profile_from_prompt

router = APIRouter(tags=["generation"])


def get_llm_client() -> LLMClient:
    return LLMClient()


@router.post("/scrape", response_model=Union[GenerationResponse, MultiProductGenerationResponse])
def scrape_and_generate(
    payload: ScrapeRequest,
    session: Session = Depends(get_session),
    llm: LLMClient = Depends(get_llm_client),
) -> Union[GenerationResponse, MultiProductGenerationResponse]:
    prompts = PromptsRepository(session).list_active(prompt_ids=payload.promptIds)
    profiles = [profile_from_prompt(prompt) for prompt in prompts]

    product_urls = payload.product_urls()
    if product_urls is not None:
        return MultiProductGenerationResponse.from_domain(generate_from_urls(product_urls, profiles, llm=llm))
    return GenerationResponse.from_domain(generate_from_url(payload.url, profiles, llm=llm))


@router.get("/prompts/active", response_model=ActivePromptsResponse)
def list_active_prompts(session: Session = Depends(get_session)) -> ActivePromptsResponse:
    prompts = PromptsRepository(session).list_active()
    return ActivePromptsResponse(
        prompts=[PromptProfileResponse.from_model(prompt) for prompt in prompts],
        total=len(prompts),
    )
