"""
ThemeForge Kernel - Block Types

The closed set of block types and the prop shape each one carries.

A block's `props` arrive as an opaque JSON map from the editor. `parse_props`
maps the `type` discriminant to its props model and validates loosely: any
top-level field that fails validation is dropped and falls back to its
documented default, so a half-broken block still renders.

Adding a block type means: a BlockType member, a props model registered in
PROPS_MODELS, and a renderer entry (test_renderer_block_types checks that
all three stay in sync).
"""

from __future__ import annotations

import copy
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel


class BlockType(StrEnum):
    HERO = "hero"
    FEATURES = "features"
    CTA = "cta"
    TESTIMONIAL = "testimonial"
    STATS = "stats"
    IMAGE_TEXT = "imageText"
    GALLERY = "gallery"
    BUTTON = "button"
    DIVIDER = "divider"
    PRICING = "pricing"
    NEWSLETTER = "newsletter"
    CARD = "card"
    PRODUCT_GRID = "productGrid"
    COURSE_GRID = "courseGrid"
    AUDIO = "audio"
    VIDEO = "video"
    TIMELINE = "timeline"
    ACCORDION = "accordion"
    TABS = "tabs"
    LOGO_CLOUD = "logoCloud"
    SOCIAL_PROOF = "socialProof"
    COUNTDOWN = "countdown"
    ROW = "row"
    HEADER = "header"
    FEATURED_PRODUCT = "featuredProduct"
    PRODUCT_CAROUSEL = "productCarousel"
    COURSE_CARD = "courseCard"
    LOGIN_FORM = "loginForm"
    REGISTER_FORM = "registerForm"
    SALE_BANNER = "saleBanner"
    HEADING = "heading"
    TEXT = "text"
    SPACER = "spacer"
    CONTACT_FORM = "contactForm"


BLOCK_TYPES: set[str] = {t.value for t in BlockType}

# Structural wrappers. Their children are attached through `parent_id`.
CONTAINER_TYPES: set[str] = {BlockType.ROW.value, BlockType.HEADER.value}


# ---------------------------------------------------------------------------
# Props models
# ---------------------------------------------------------------------------


class BlockProps(BaseModel):
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)


class _Item(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class FeatureItem(_Item):
    icon: str = ""
    title: str = ""
    description: str = ""


class StatItem(_Item):
    value: str = "0"
    label: str = ""


class GalleryImage(_Item):
    src: str = ""
    alt: str = ""
    caption: str = ""


class PricingPlan(_Item):
    name: str = ""
    price: float = 0
    period: str = "month"
    features: list[str] = Field(default_factory=list)
    button_text: str = "Choose plan"
    button_link: str = "#"
    highlighted: bool = False


class TimelineItem(_Item):
    date: str = ""
    title: str = ""
    description: str = ""


class AccordionItem(_Item):
    title: str = ""
    content: str = ""


class TabItem(_Item):
    label: str = ""
    content: str = ""


class LogoItem(_Item):
    src: str = ""
    alt: str = ""
    link: str = ""


class HeroProps(BlockProps):
    title: str = "Welcome"
    subtitle: str = ""
    cta_text: str = ""
    cta_link: str = "#"
    background_image: str = ""
    overlay: float = 0
    alignment: str = "center"


class FeaturesProps(BlockProps):
    title: str = ""
    subtitle: str = ""
    columns: int = 3
    features: list[FeatureItem] = Field(default_factory=list)


class CtaProps(BlockProps):
    heading: str = "Ready to get started?"
    description: str = ""
    button_text: str = "Contact Us"
    button_link: str = "#"
    background_type: str = "gradient"


class TestimonialProps(BlockProps):
    quote: str = ""
    author: str = ""
    role: str = ""
    avatar: str = ""
    rating: int = 5


class StatsProps(BlockProps):
    title: str = ""
    stats: list[StatItem] = Field(default_factory=list)


class ImageTextProps(BlockProps):
    image: str = ""
    image_position: str = "left"
    title: str = ""
    text: str = ""
    button_text: str = ""
    button_link: str = "#"


class GalleryProps(BlockProps):
    title: str = ""
    columns: int = 3
    images: list[GalleryImage] = Field(default_factory=list)


class ButtonProps(BlockProps):
    text: str = "Click me"
    link: str = "#"
    variant: str = "primary"
    size: str = "medium"


class DividerProps(BlockProps):
    style: str = "solid"
    spacing: int = 32


class PricingProps(BlockProps):
    title: str = ""
    plans: list[PricingPlan] = Field(default_factory=list)
    currency: str = "$"


class NewsletterProps(BlockProps):
    title: str = "Subscribe to our newsletter"
    description: str = ""
    button_text: str = "Subscribe"
    placeholder: str = "Enter your email"


class CardProps(BlockProps):
    title: str = ""
    description: str = ""
    image: str = ""
    button_text: str = ""
    button_link: str = "#"


class ProductGridProps(BlockProps):
    title: str = "Featured Products"
    columns: int = 3
    limit: int = 8
    source: str = "products"


class CourseGridProps(BlockProps):
    title: str = "Courses"
    columns: int = 3
    limit: int = 6


class AudioProps(BlockProps):
    src: str = ""
    title: str = ""
    artist: str = ""
    cover_image: str = ""


class VideoProps(BlockProps):
    src: str = ""
    poster: str = ""
    title: str = ""
    autoplay: bool = False
    controls: bool = True


class TimelineProps(BlockProps):
    title: str = ""
    items: list[TimelineItem] = Field(default_factory=list)


class AccordionProps(BlockProps):
    title: str = ""
    items: list[AccordionItem] = Field(default_factory=list)


class TabsProps(BlockProps):
    tabs: list[TabItem] = Field(default_factory=list)


class LogoCloudProps(BlockProps):
    title: str = ""
    logos: list[LogoItem] = Field(default_factory=list)


class SocialProofProps(BlockProps):
    title: str = ""
    rating: float = 5
    review_count: int = 0
    text: str = ""


class CountdownProps(BlockProps):
    title: str = ""
    target_date: str = ""
    expired_text: str = "This offer has ended"


class RowProps(BlockProps):
    columns: int = 2
    gap: int = 24


class HeaderProps(BlockProps):
    logo_text: str = ""
    sticky: bool = False
    show_cart: bool = True


class FeaturedProductProps(BlockProps):
    title: str = "Featured Product"
    button_text: str = "Add to Cart"


class ProductCarouselProps(BlockProps):
    title: str = "Products"
    limit: int = 10


class CourseCardProps(BlockProps):
    title: str = ""
    description: str = ""
    image: str = ""
    price: float = 0
    link: str = "#"


class LoginFormProps(BlockProps):
    title: str = "Sign in"
    button_text: str = "Sign in"
    show_register_link: bool = True


class RegisterFormProps(BlockProps):
    title: str = "Create an account"
    button_text: str = "Create account"
    show_login_link: bool = True


class SaleBannerProps(BlockProps):
    text: str = ""
    code: str = ""
    link: str = "#"
    link_text: str = "Shop now"


class HeadingProps(BlockProps):
    text: str = ""
    level: int = 2


class TextProps(BlockProps):
    content: str = ""


class SpacerProps(BlockProps):
    height: int = 48


class ContactFormProps(BlockProps):
    title: str = "Contact us"
    fields: list[str] = Field(default_factory=lambda: ["name", "email", "message"])
    submit_text: str = "Send Message"


PROPS_MODELS: dict[BlockType, type[BlockProps]] = {
    BlockType.HERO: HeroProps,
    BlockType.FEATURES: FeaturesProps,
    BlockType.CTA: CtaProps,
    BlockType.TESTIMONIAL: TestimonialProps,
    BlockType.STATS: StatsProps,
    BlockType.IMAGE_TEXT: ImageTextProps,
    BlockType.GALLERY: GalleryProps,
    BlockType.BUTTON: ButtonProps,
    BlockType.DIVIDER: DividerProps,
    BlockType.PRICING: PricingProps,
    BlockType.NEWSLETTER: NewsletterProps,
    BlockType.CARD: CardProps,
    BlockType.PRODUCT_GRID: ProductGridProps,
    BlockType.COURSE_GRID: CourseGridProps,
    BlockType.AUDIO: AudioProps,
    BlockType.VIDEO: VideoProps,
    BlockType.TIMELINE: TimelineProps,
    BlockType.ACCORDION: AccordionProps,
    BlockType.TABS: TabsProps,
    BlockType.LOGO_CLOUD: LogoCloudProps,
    BlockType.SOCIAL_PROOF: SocialProofProps,
    BlockType.COUNTDOWN: CountdownProps,
    BlockType.ROW: RowProps,
    BlockType.HEADER: HeaderProps,
    BlockType.FEATURED_PRODUCT: FeaturedProductProps,
    BlockType.PRODUCT_CAROUSEL: ProductCarouselProps,
    BlockType.COURSE_CARD: CourseCardProps,
    BlockType.LOGIN_FORM: LoginFormProps,
    BlockType.REGISTER_FORM: RegisterFormProps,
    BlockType.SALE_BANNER: SaleBannerProps,
    BlockType.HEADING: HeadingProps,
    BlockType.TEXT: TextProps,
    BlockType.SPACER: SpacerProps,
    BlockType.CONTACT_FORM: ContactFormProps,
}


def is_known_type(block_type: str) -> bool:
    return block_type in BLOCK_TYPES


def parse_props(block_type: str, raw: dict[str, Any] | None) -> BlockProps | None:
    """
    Validate `raw` against the props model for `block_type`.

    Returns None for unknown types. Fields that fail validation are dropped
    (one pass per failing field) and fall back to their defaults.
    """
    if block_type not in BLOCK_TYPES:
        return None
    model = PROPS_MODELS[BlockType(block_type)]
    data = dict(raw) if isinstance(raw, dict) else {}

    for _ in range(len(data) + 1):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            bad = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
            bad |= {to_camel(key) for key in bad}
            if not bad & set(data):
                break
            for key in bad:
                data.pop(key, None)
    return model()


# ---------------------------------------------------------------------------
# Block templates (editor presets)
# ---------------------------------------------------------------------------

BLOCK_TEMPLATES: list[dict[str, Any]] = [
    {
        "id": "hero-basic",
        "name": "Basic Hero",
        "type": "hero",
        "category": "headers",
        "defaultProps": {"title": "Welcome", "subtitle": "Your amazing subtitle", "ctaText": "Get Started"},
    },
    {
        "id": "hero-centered",
        "name": "Centered Hero",
        "type": "hero",
        "category": "headers",
        "defaultProps": {"title": "Welcome", "subtitle": "Centered content", "alignment": "center"},
    },
    {
        "id": "features-3col",
        "name": "3 Column Features",
        "type": "features",
        "category": "content",
        "defaultProps": {"columns": 3, "features": []},
    },
    {
        "id": "testimonials-grid",
        "name": "Testimonials Grid",
        "type": "testimonial",
        "category": "social-proof",
        "defaultProps": {"quote": "", "author": ""},
    },
    {
        "id": "pricing-3tier",
        "name": "3 Tier Pricing",
        "type": "pricing",
        "category": "commerce",
        "defaultProps": {"plans": []},
    },
    {
        "id": "cta-simple",
        "name": "Simple CTA",
        "type": "cta",
        "category": "conversion",
        "defaultProps": {"heading": "Ready to get started?", "buttonText": "Contact Us"},
    },
    {
        "id": "contact-form",
        "name": "Contact Form",
        "type": "contactForm",
        "category": "forms",
        "defaultProps": {"fields": ["name", "email", "message"], "submitText": "Send Message"},
    },
]


def get_block_templates(category: str | None = None) -> list[dict[str, Any]]:
    templates = copy.deepcopy(BLOCK_TEMPLATES)
    if category:
        return [t for t in templates if t["category"] == category]
    return templates


def get_block_template(template_id: str) -> dict[str, Any] | None:
    for template in BLOCK_TEMPLATES:
        if template["id"] == template_id:
            return copy.deepcopy(template)
    return None
