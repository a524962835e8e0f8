"""
Data Models for Copydesk
========================

Pydantic request/response models for the generation endpoints. Field names
follow the wire format (snake_case requests, ``imageUrl`` in image responses).
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ProjectType = Literal["blog", "presell"]
LanguageCode = Literal["sk", "cs", "en", "da", "hu"]


class CopydeskModel(BaseModel):
    """Base for wire models; accepts field names and aliases alike."""

    model_config = {"populate_by_name": True}

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# SELECTION EDITING
# =============================================================================


class EditSelectionRequest(CopydeskModel):
    selected_html: str = Field(..., description="Serialized markup of the selection")
    instruction: str = Field(..., description="Natural-language edit instruction")
    context_before: str = Field(default="", description="Plain text preceding the selection")
    context_after: str = Field(default="", description="Plain text following the selection")
    brand_name: Optional[str] = Field(default=None, description="Brand the content is written for")

    @field_validator("instruction")
    @classmethod
    def validate_instruction(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("instruction must not be blank")
        return value


class EditSelectionResponse(CopydeskModel):
    html: str


class RegenerateImageRequest(CopydeskModel):
    prompt: str = Field(..., description="What the new image should show")
    original_alt: str = Field(default="", description="Alt text of the image being replaced")
    image_style: Optional[str] = Field(default=None, description="Visual style hint")

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be blank")
        return value


class RegenerateImageResponse(CopydeskModel):
    image_url: str = Field(..., alias="imageUrl", description="data: URL of the generated image")
    alt: str = ""


# =============================================================================
# WHOLE-DOCUMENT GENERATION
# =============================================================================


class BrandProfile(CopydeskModel):
    """Structured brand fields merged into the brand context."""

    products: Optional[str] = None
    tone_of_voice: Optional[str] = None
    target_audience: Optional[str] = None
    vop: Optional[str] = Field(default=None, description="Commercial conditions")


class GenerateContentRequest(CopydeskModel):
    project_type: ProjectType = "blog"
    title: Optional[str] = None
    topic: str = Field(..., min_length=1)
    keywords: List[str] = Field(default_factory=list)
    template_html: Optional[str] = None
    language: LanguageCode = "en"
    custom_prompt: Optional[str] = None
    image_count: int = Field(default=2, ge=0, le=12)
    brand_name: Optional[str] = None
    brand_context: Optional[str] = None
    brand_profile: Optional[BrandProfile] = None


class GenerateImagesRequest(CopydeskModel):
    html_content: str
    brand_name: Optional[str] = None
    brand_context: Optional[str] = None
    image_style: Optional[str] = None


class PlaceholderImage(CopydeskModel):
    placeholder: str = Field(..., description="Literal placeholder tag to replace")
    image_url: str = Field(..., alias="imageUrl")
    alt: str = ""


class GenerateImagesResponse(CopydeskModel):
    images: List[PlaceholderImage] = Field(default_factory=list)


# =============================================================================
# TRANSLATION AND CONTINUATION
# =============================================================================


class TranslateRequest(CopydeskModel):
    content_html: str
    source_language: LanguageCode
    target_language: LanguageCode
    brand_names: List[str] = Field(default_factory=list)


class TranslateResponse(CopydeskModel):
    html: str


class ContinueWritingRequest(CopydeskModel):
    last_content: str = Field(..., description="Tail of the current document")
    project_type: ProjectType = "blog"
    brand_name: Optional[str] = None


# =============================================================================
# SEO METADATA AND KEYWORD RESEARCH
# =============================================================================


class GenerateSeoRequest(CopydeskModel):
    content_html: str = Field(..., description="Document markup the metadata describes")
    title: str = ""
    keywords: List[str] = Field(default_factory=list)
    language: LanguageCode = "sk"
    brand_name: Optional[str] = None


class SeoMetadata(CopydeskModel):
    seo_title: str = ""
    seo_description: str = ""


class SuggestKeywordsRequest(CopydeskModel):
    brand: Optional[str] = Field(default=None, description="Brand the keywords are researched for")
    brand_context: Optional[str] = None
    country: Optional[str] = Field(default=None, description="Target market")
    language: LanguageCode = "sk"
    categories: Optional[str] = Field(default=None, description="Product categories, free text")


class KeywordSuggestion(CopydeskModel):
    keyword: str
    estimated_volume: int = 0
    intent: str = Field(default="informational", description="informational, commercial or transactional")
    reasoning: str = ""

    @field_validator("estimated_volume", mode="before")
    @classmethod
    def coerce_volume(cls, value):
        try:
            return max(0, int(float(value)))
        except (TypeError, ValueError):
            return 0


class SuggestKeywordsResponse(CopydeskModel):
    suggestions: List[KeywordSuggestion] = Field(default_factory=list)


class ErrorResponse(CopydeskModel):
    error: str
