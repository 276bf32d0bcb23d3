"""
ThemeForge Kernel - Block Renderer

Pure function: (block, settings) -> template fragment string
No IO. No randomness. Deterministic: same input -> same output, always.

Each block type maps to one fixed fragment. Props are defaulted through the
block's props model first (blocks.parse_props), then interpolated escaped.

Blocks that need run-time data (product and course listings, the logged-in
user, form errors) emit Mustache directives instead of literal values:
  {{#products}}...{{/products}}   iteration / truthy section
  {{^products}}...{{/products}}   else-branch
These are resolved at page render time against the context built by
templating.build_page_context.

Unknown block types render an inert, clearly marked placeholder. Container
types (row, header) render their wrapper around `children`, which the
assembler supplies.
"""

from __future__ import annotations

from collections.abc import Callable
from html import escape as _html_escape
from typing import Any

from themeforge.kernel import blocks as b
from themeforge.kernel.blocks import BlockType
from themeforge.kernel.tokens import ThemeSettings
from themeforge.kernel.types import Block

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_block(
    block: Block,
    settings: ThemeSettings | None = None,
    children: str = "",
) -> str:
    """
    Render one block to a template fragment.
    Pure function. No side effects. No IO.
    """
    settings = settings or ThemeSettings()
    props = b.parse_props(block.type, block.props)
    if props is None:
        return render_placeholder(block)

    renderer = _RENDERERS[BlockType(block.type)]
    inner = renderer(block, props, settings, children)
    if children and block.type not in b.CONTAINER_TYPES:
        inner = f"{inner}\n{children}"
    return _wrap(block, inner)


def render_placeholder(block: Block) -> str:
    """Inert marker for block types this version does not know."""
    block_type = escape(block.type or "unknown")
    return (
        f'<div class="tf-block tf-unknown-block" data-block-id="{escape(block.id)}" data-block-type="{block_type}">'
        f"<!-- themeforge: unsupported block type {block_type} -->"
        f'<p class="tf-placeholder">Unsupported block: {block_type}</p>'
        f"</div>"
    )


def has_renderer(block_type: str) -> bool:
    return block_type in b.BLOCK_TYPES and BlockType(block_type) in _RENDERERS


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------


def escape(text: Any) -> str:
    """
    HTML-escape user content and neutralise template braces.
    Prop text can never open a directive.
    """
    if text is None:
        return ""
    out = _html_escape(str(text), quote=True)
    return out.replace("{", "&#123;").replace("}", "&#125;")


def _num(value: float) -> str:
    """Stable number formatting: integers without a trailing .0."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def _price(value: float) -> str:
    return f"{value:.2f}"


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Wrapper: visibility, animation, link
# ---------------------------------------------------------------------------


def _wrap(block: Block, inner: str) -> str:
    classes = []
    for breakpoint in ("desktop", "tablet", "mobile"):
        if block.visibility.get(breakpoint) is False:
            classes.append(f"tf-hide-{breakpoint}")

    attrs = [f'data-block-id="{escape(block.id)}"', f'data-block-type="{escape(block.type)}"']
    if block.animation and block.animation.get("type"):
        attrs.append(f'data-animation="{escape(block.animation["type"])}"')
        if "duration" in block.animation:
            attrs.append(f'data-animation-duration="{escape(block.animation["duration"])}"')
        if "delay" in block.animation:
            attrs.append(f'data-animation-delay="{escape(block.animation["delay"])}"')

    if block.link and block.link.get("url"):
        target = block.link.get("target") or "_self"
        inner = f'<a class="tf-block-link" href="{escape(block.link["url"])}" target="{escape(target)}">{inner}</a>'

    class_attr = " ".join(["tf-block", *classes])
    return f'<div class="{class_attr}" {" ".join(attrs)}>\n{inner}\n</div>'


def _section_title(title: str, tag: str = "h2") -> str:
    if not title:
        return ""
    return f'<{tag} class="section-title">{escape(title)}</{tag}>'


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------


def _render_hero(block: Block, p: b.HeroProps, s: ThemeSettings, children: str) -> str:
    alignment = p.alignment if p.alignment in ("left", "center", "right") else "center"
    style = ""
    if p.background_image:
        overlay = _num(max(0.0, min(1.0, p.overlay)))
        style = (
            f' style="background-image: linear-gradient(rgba(0,0,0,{overlay}), rgba(0,0,0,{overlay})), '
            f'url(&#39;{escape(p.background_image)}&#39;);"'
        )
    parts = [
        f'<section class="hero hero-{alignment}"{style}>',
        '  <div class="container">',
        f'    <h1 class="hero-title">{escape(p.title)}</h1>',
    ]
    if p.subtitle:
        parts.append(f'    <p class="hero-subtitle">{escape(p.subtitle)}</p>')
    if p.cta_text:
        parts.append(f'    <a href="{escape(p.cta_link)}" class="btn btn-primary btn-lg">{escape(p.cta_text)}</a>')
    parts.append("  </div>")
    parts.append("</section>")
    return "\n".join(parts)


def _render_features(block: Block, p: b.FeaturesProps, s: ThemeSettings, children: str) -> str:
    columns = _clamp(p.columns, 1, 6)
    parts = ['<section class="features">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    if p.subtitle:
        parts.append(f'    <p class="section-subtitle">{escape(p.subtitle)}</p>')
    parts.append(f'    <div class="grid grid-{columns}">')
    for feature in p.features:
        parts.append('      <div class="feature card">')
        if feature.icon:
            parts.append(f'        <div class="feature-icon">{escape(feature.icon)}</div>')
        parts.append(f'        <h3 class="feature-title">{escape(feature.title)}</h3>')
        parts.append(f'        <p class="feature-description">{escape(feature.description)}</p>')
        parts.append("      </div>")
    parts.extend(["    </div>", "  </div>", "</section>"])
    return "\n".join(parts)


def _render_cta(block: Block, p: b.CtaProps, s: ThemeSettings, children: str) -> str:
    if p.background_type == "solid":
        background = s.colors.primary
    else:
        background = f"linear-gradient(135deg, {s.colors.primary}, {s.colors.secondary})"
    parts = [
        f'<section class="cta" style="background: {escape(background)};">',
        '  <div class="container">',
        f'    <h2 class="cta-heading">{escape(p.heading)}</h2>',
    ]
    if p.description:
        parts.append(f'    <p class="cta-description">{escape(p.description)}</p>')
    parts.append(f'    <a href="{escape(p.button_link)}" class="btn btn-light">{escape(p.button_text)}</a>')
    parts.extend(["  </div>", "</section>"])
    return "\n".join(parts)


def _render_testimonial(block: Block, p: b.TestimonialProps, s: ThemeSettings, children: str) -> str:
    rating = _clamp(p.rating, 0, 5)
    stars = "&#9733;" * rating + "&#9734;" * (5 - rating)
    parts = ['<figure class="testimonial card">']
    parts.append(f'  <div class="testimonial-rating" aria-label="{rating} out of 5">{stars}</div>')
    parts.append(f'  <blockquote class="testimonial-quote">{escape(p.quote or "No testimonial yet.")}</blockquote>')
    parts.append('  <figcaption class="testimonial-author">')
    if p.avatar:
        parts.append(f'    <img src="{escape(p.avatar)}" alt="{escape(p.author)}" class="testimonial-avatar">')
    parts.append(f"    <strong>{escape(p.author or 'Anonymous')}</strong>")
    if p.role:
        parts.append(f"    <span>{escape(p.role)}</span>")
    parts.extend(["  </figcaption>", "</figure>"])
    return "\n".join(parts)


def _render_stats(block: Block, p: b.StatsProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="stats">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append(f'    <div class="grid grid-{_clamp(len(p.stats) or 1, 1, 6)}">')
    for stat in p.stats:
        parts.append(
            f'      <div class="stat"><span class="stat-value">{escape(stat.value)}</span>'
            f'<span class="stat-label">{escape(stat.label)}</span></div>'
        )
    parts.extend(["    </div>", "  </div>", "</section>"])
    return "\n".join(parts)


def _render_image_text(block: Block, p: b.ImageTextProps, s: ThemeSettings, children: str) -> str:
    position = "right" if p.image_position == "right" else "left"
    image = (
        f'<div class="image-text-media"><img src="{escape(p.image)}" alt="{escape(p.title)}" loading="lazy"></div>'
        if p.image
        else '<div class="image-text-media image-placeholder"></div>'
    )
    body = ['<div class="image-text-body">']
    if p.title:
        body.append(f"  <h2>{escape(p.title)}</h2>")
    body.append(f"  <p>{escape(p.text)}</p>")
    if p.button_text:
        body.append(f'  <a href="{escape(p.button_link)}" class="btn btn-primary">{escape(p.button_text)}</a>')
    body.append("</div>")
    parts = [f'<section class="image-text image-{position}">', '  <div class="container grid grid-2">']
    parts.append(image)
    parts.extend(body)
    parts.extend(["  </div>", "</section>"])
    return "\n".join(parts)


def _render_gallery(block: Block, p: b.GalleryProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="gallery">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append(f'    <div class="grid grid-{_clamp(p.columns, 1, 6)}">')
    for image in p.images:
        figure = f'<figure class="gallery-item"><img src="{escape(image.src)}" alt="{escape(image.alt)}" loading="lazy">'
        if image.caption:
            figure += f"<figcaption>{escape(image.caption)}</figcaption>"
        parts.append(f"      {figure}</figure>")
    parts.extend(["    </div>", "  </div>", "</section>"])
    return "\n".join(parts)


def _render_button(block: Block, p: b.ButtonProps, s: ThemeSettings, children: str) -> str:
    variant = p.variant if p.variant in ("primary", "secondary", "outline", "gradient", "ghost") else "primary"
    size = {"small": "btn-sm", "large": "btn-lg"}.get(p.size, "")
    classes = " ".join(c for c in ("btn", f"btn-{variant}", size) if c)
    return f'<a href="{escape(p.link)}" class="{classes}">{escape(p.text)}</a>'


def _render_divider(block: Block, p: b.DividerProps, s: ThemeSettings, children: str) -> str:
    style = p.style if p.style in ("solid", "dashed", "dotted") else "solid"
    spacing = max(0, p.spacing)
    return f'<hr class="divider divider-{style}" style="margin: {spacing}px 0;">'


def _render_pricing(block: Block, p: b.PricingProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="pricing">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append(f'    <div class="grid grid-{_clamp(len(p.plans) or 1, 1, 4)}">')
    for plan in p.plans:
        highlighted = " pricing-plan-highlighted" if plan.highlighted else ""
        parts.append(f'      <div class="pricing-plan card{highlighted}">')
        parts.append(f'        <h3 class="pricing-plan-name">{escape(plan.name)}</h3>')
        parts.append(
            f'        <p class="pricing-plan-price">{escape(p.currency)}{_price(plan.price)}'
            f"<span>/{escape(plan.period)}</span></p>"
        )
        parts.append("        <ul>")
        for feature in plan.features:
            parts.append(f"          <li>{escape(feature)}</li>")
        parts.append("        </ul>")
        parts.append(f'        <a href="{escape(plan.button_link)}" class="btn btn-primary">{escape(plan.button_text)}</a>')
        parts.append("      </div>")
    parts.extend(["    </div>", "  </div>", "</section>"])
    return "\n".join(parts)


def _render_newsletter(block: Block, p: b.NewsletterProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="newsletter">', '  <div class="container">', f"    {_section_title(p.title)}"]
    if p.description:
        parts.append(f"    <p>{escape(p.description)}</p>")
    parts.extend(
        [
            '    <form class="newsletter-form" action="/api/newsletter/subscribe" method="POST">',
            f'      <input type="email" name="email" placeholder="{escape(p.placeholder)}" required>',
            f'      <button type="submit" class="btn btn-primary">{escape(p.button_text)}</button>',
            "    </form>",
            "  </div>",
            "</section>",
        ]
    )
    return "\n".join(parts)


def _render_card(block: Block, p: b.CardProps, s: ThemeSettings, children: str) -> str:
    parts = ['<div class="card">']
    if p.image:
        parts.append(f'  <img src="{escape(p.image)}" alt="{escape(p.title)}" class="card-image" loading="lazy">')
    parts.append(f'  <h3 class="card-title">{escape(p.title or "Untitled")}</h3>')
    if p.description:
        parts.append(f'  <p class="card-description">{escape(p.description)}</p>')
    if p.button_text:
        parts.append(f'  <a href="{escape(p.button_link)}" class="btn btn-primary">{escape(p.button_text)}</a>')
    parts.append("</div>")
    return "\n".join(parts)


def _render_heading(block: Block, p: b.HeadingProps, s: ThemeSettings, children: str) -> str:
    level = _clamp(p.level, 1, 6)
    return f"<h{level}>{escape(p.text)}</h{level}>"


def _render_text(block: Block, p: b.TextProps, s: ThemeSettings, children: str) -> str:
    paragraphs = [line for line in p.content.split("\n\n") if line.strip()]
    if not paragraphs:
        return '<div class="text-block"></div>'
    body = "".join(f"<p>{escape(para)}</p>" for para in paragraphs)
    return f'<div class="text-block">{body}</div>'


def _render_spacer(block: Block, p: b.SpacerProps, s: ThemeSettings, children: str) -> str:
    return f'<div class="spacer" style="height: {max(0, p.height)}px;"></div>'


# ---------------------------------------------------------------------------
# Media blocks
# ---------------------------------------------------------------------------


def _render_audio(block: Block, p: b.AudioProps, s: ThemeSettings, children: str) -> str:
    parts = ['<div class="audio-player">']
    if p.cover_image:
        parts.append(f'  <img src="{escape(p.cover_image)}" alt="{escape(p.title)}" class="audio-cover">')
    parts.append(f'  <audio controls preload="none" src="{escape(p.src)}"></audio>')
    if p.title:
        label = escape(p.title) + (f" &middot; {escape(p.artist)}" if p.artist else "")
        parts.append(f'  <p class="audio-title">{label}</p>')
    parts.append("</div>")
    return "\n".join(parts)


def _render_video(block: Block, p: b.VideoProps, s: ThemeSettings, children: str) -> str:
    flags = []
    if p.controls:
        flags.append("controls")
    if p.autoplay:
        flags.extend(["autoplay", "muted"])
    poster = f' poster="{escape(p.poster)}"' if p.poster else ""
    video = f'<video src="{escape(p.src)}"{poster} {" ".join(flags)} playsinline></video>'.replace("  ", " ")
    title = f'<p class="video-title">{escape(p.title)}</p>' if p.title else ""
    return f'<div class="video-player">{video}{title}</div>'


def _render_logo_cloud(block: Block, p: b.LogoCloudProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="logo-cloud">', '  <div class="container">']
    if p.title:
        parts.append(f'    <p class="logo-cloud-title">{escape(p.title)}</p>')
    parts.append('    <div class="logo-cloud-items">')
    for logo in p.logos:
        img = f'<img src="{escape(logo.src)}" alt="{escape(logo.alt)}" loading="lazy">'
        if logo.link:
            img = f'<a href="{escape(logo.link)}">{img}</a>'
        parts.append(f"      {img}")
    parts.extend(["    </div>", "  </div>", "</section>"])
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Interactive blocks (driven by the fixed client scripts)
# ---------------------------------------------------------------------------


def _render_timeline(block: Block, p: b.TimelineProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="timeline">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append('    <ol class="timeline-items">')
    for item in p.items:
        parts.append(
            f'      <li class="timeline-item"><span class="timeline-date">{escape(item.date)}</span>'
            f"<h3>{escape(item.title)}</h3><p>{escape(item.description)}</p></li>"
        )
    parts.extend(["    </ol>", "  </div>", "</section>"])
    return "\n".join(parts)


def _render_accordion(block: Block, p: b.AccordionProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="accordion">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    for item in p.items:
        parts.append(
            f'    <details class="accordion-item"><summary>{escape(item.title)}</summary>'
            f"<div>{escape(item.content)}</div></details>"
        )
    parts.extend(["  </div>", "</section>"])
    return "\n".join(parts)


def _render_tabs(block: Block, p: b.TabsProps, s: ThemeSettings, children: str) -> str:
    block_key = escape(block.id)
    parts = [f'<div class="tabs" data-tabs="{block_key}">', '  <div class="tabs-nav" role="tablist">']
    for i, tab in enumerate(p.tabs):
        active = " active" if i == 0 else ""
        parts.append(
            f'    <button class="tab-button{active}" role="tab" data-tab="{block_key}-{i}">{escape(tab.label)}</button>'
        )
    parts.append("  </div>")
    for i, tab in enumerate(p.tabs):
        hidden = "" if i == 0 else " hidden"
        parts.append(f'  <div class="tab-panel" role="tabpanel" id="{block_key}-{i}"{hidden}>{escape(tab.content)}</div>')
    parts.append("</div>")
    return "\n".join(parts)


def _render_social_proof(block: Block, p: b.SocialProofProps, s: ThemeSettings, children: str) -> str:
    rating = max(0.0, min(5.0, p.rating))
    parts = ['<section class="social-proof">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append(
        f'    <p class="social-proof-rating"><strong>{_num(rating)}</strong> / 5 '
        f"from {max(0, p.review_count)} reviews</p>"
    )
    if p.text:
        parts.append(f"    <p>{escape(p.text)}</p>")
    parts.extend(["  </div>", "</section>"])
    return "\n".join(parts)


def _render_countdown(block: Block, p: b.CountdownProps, s: ThemeSettings, children: str) -> str:
    parts = [
        f'<section class="countdown" data-countdown="{escape(p.target_date)}" '
        f'data-expired-text="{escape(p.expired_text)}">',
        '  <div class="container">',
    ]
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append('    <div class="countdown-timer">')
    for unit in ("days", "hours", "minutes", "seconds"):
        parts.append(f'      <div class="countdown-unit"><span data-unit="{unit}">0</span><small>{unit}</small></div>')
    parts.extend(["    </div>", "  </div>", "</section>"])
    return "\n".join(parts)


def _render_contact_form(block: Block, p: b.ContactFormProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="contact-form">', '  <div class="container">', f"    {_section_title(p.title)}"]
    parts.append('    <form action="/api/contact" method="POST" class="form">')
    for name in p.fields:
        label = escape(name.replace("_", " ").capitalize())
        field_name = escape(name)
        if name == "message":
            parts.append(f'      <label>{label}<textarea name="{field_name}" rows="5" required></textarea></label>')
        else:
            input_type = "email" if name == "email" else "text"
            parts.append(f'      <label>{label}<input type="{input_type}" name="{field_name}" required></label>')
    parts.append(f'      <button type="submit" class="btn btn-primary">{escape(p.submit_text)}</button>')
    parts.extend(["    </form>", "  </div>", "</section>"])
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Commerce and learning blocks (run-time data via directives)
# ---------------------------------------------------------------------------

_PRODUCT_CARD = """        <div class="product-card">
          {{#featuredImage}}<a href="/shop/product/{{slug}}" class="product-image"><img src="{{featuredImage}}" alt="{{name}}"></a>{{/featuredImage}}
          <div class="product-info">
            <h3 class="product-name"><a href="/shop/product/{{slug}}">{{name}}</a></h3>
            <div class="product-price">
              {{#salePrice}}<span class="price-sale">${{salePrice}}</span><span class="price-regular">${{price}}</span>{{/salePrice}}
              {{^salePrice}}<span class="price">${{price}}</span>{{/salePrice}}
            </div>
            <button class="btn btn-primary add-to-cart" data-product-id="{{id}}">Add to Cart</button>
          </div>
        </div>"""


def _render_product_grid(block: Block, p: b.ProductGridProps, s: ThemeSettings, children: str) -> str:
    source = p.source if p.source in ("products", "featuredProducts") else "products"
    parts = ['<section class="product-grid">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append(
        f'    <div class="products-grid grid grid-{_clamp(p.columns, 1, 6)}" data-source="{source}" '
        f'data-limit="{max(0, p.limit)}">'
    )
    parts.append(f"      {{{{#{source}}}}}")
    parts.append(_PRODUCT_CARD)
    parts.append(f"      {{{{/{source}}}}}")
    parts.append(f'      {{{{^{source}}}}}<p class="empty-state">No products available yet.</p>{{{{/{source}}}}}')
    parts.extend(["    </div>", "  </div>", "</section>"])
    return "\n".join(parts)


def _render_product_carousel(block: Block, p: b.ProductCarouselProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="product-carousel" data-carousel>', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.append(f'    <div class="carousel-track" data-source="products" data-limit="{max(0, p.limit)}">')
    parts.append("      {{#products}}")
    parts.append(_PRODUCT_CARD)
    parts.append("      {{/products}}")
    parts.append('      {{^products}}<p class="empty-state">No products available yet.</p>{{/products}}')
    parts.extend(
        [
            "    </div>",
            '    <button class="carousel-prev" aria-label="Previous">&larr;</button>',
            '    <button class="carousel-next" aria-label="Next">&rarr;</button>',
            "  </div>",
            "</section>",
        ]
    )
    return "\n".join(parts)


def _render_featured_product(block: Block, p: b.FeaturedProductProps, s: ThemeSettings, children: str) -> str:
    parts = [
        '<section class="featured-product">',
        '  <div class="container">',
        f"    {_section_title(p.title)}",
        "    {{#featuredProduct}}",
        '    <div class="featured-product-card grid grid-2">',
        '      {{#featuredImage}}<img src="{{featuredImage}}" alt="{{name}}">{{/featuredImage}}',
        "      <div>",
        "        <h3>{{name}}</h3>",
        "        <p>{{shortDescription}}</p>",
        '        <p class="product-price">${{price}}</p>',
        f'        <button class="btn btn-primary add-to-cart" data-product-id="{{{{id}}}}">{escape(p.button_text)}</button>',
        "      </div>",
        "    </div>",
        "    {{/featuredProduct}}",
        '    {{^featuredProduct}}<p class="empty-state">No featured product selected.</p>{{/featuredProduct}}',
        "  </div>",
        "</section>",
    ]
    return "\n".join(parts)


def _render_course_grid(block: Block, p: b.CourseGridProps, s: ThemeSettings, children: str) -> str:
    parts = ['<section class="course-grid">', '  <div class="container">']
    if p.title:
        parts.append(f"    {_section_title(p.title)}")
    parts.extend(
        [
            f'    <div class="courses-grid grid grid-{_clamp(p.columns, 1, 6)}" data-source="courses" '
            f'data-limit="{max(0, p.limit)}">',
            "      {{#courses}}",
            '      <div class="course-card card">',
            '        {{#thumbnail}}<img src="{{thumbnail}}" alt="{{title}}" class="card-image">{{/thumbnail}}',
            '        <h3 class="card-title"><a href="/courses/{{slug}}">{{title}}</a></h3>',
            '        <p class="card-description">{{shortDescription}}</p>',
            '        {{#priceInCents}}<p class="course-price">${{price}}</p>{{/priceInCents}}',
            '        {{^priceInCents}}<p class="course-price">Free</p>{{/priceInCents}}',
            '        <a href="/courses/{{slug}}" class="btn btn-primary">View Course</a>',
            "      </div>",
            "      {{/courses}}",
            '      {{^courses}}<p class="empty-state">No courses available yet.</p>{{/courses}}',
            "    </div>",
            "  </div>",
            "</section>",
        ]
    )
    return "\n".join(parts)


def _render_course_card(block: Block, p: b.CourseCardProps, s: ThemeSettings, children: str) -> str:
    parts = ['<div class="course-card card">']
    if p.image:
        parts.append(f'  <img src="{escape(p.image)}" alt="{escape(p.title)}" class="card-image" loading="lazy">')
    parts.append(f'  <h3 class="card-title">{escape(p.title or "Untitled course")}</h3>')
    if p.description:
        parts.append(f'  <p class="card-description">{escape(p.description)}</p>')
    price = f"${_price(p.price)}" if p.price > 0 else "Free"
    parts.append(f'  <p class="course-price">{price}</p>')
    parts.append(f'  <a href="{escape(p.link)}" class="btn btn-primary">View Course</a>')
    parts.append("</div>")
    return "\n".join(parts)


def _render_sale_banner(block: Block, p: b.SaleBannerProps, s: ThemeSettings, children: str) -> str:
    parts = [f'<div class="sale-banner" style="background: {escape(s.colors.accent)};">']
    parts.append(f'  <span class="sale-banner-text">{escape(p.text or "Limited time offer")}</span>')
    if p.code:
        parts.append(f'  <span class="sale-banner-code">Use code <strong>{escape(p.code)}</strong></span>')
    parts.append(f'  <a href="{escape(p.link)}" class="sale-banner-link">{escape(p.link_text)}</a>')
    parts.append("</div>")
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Auth forms
# ---------------------------------------------------------------------------


def _render_login_form(block: Block, p: b.LoginFormProps, s: ThemeSettings, children: str) -> str:
    parts = [
        '<section class="auth-form">',
        f'  <h1 class="auth-title">{escape(p.title)}</h1>',
        '  {{#error}}<div class="alert alert-error">{{error}}</div>{{/error}}',
        '  <form id="login-form" class="form" data-auth="login">',
        '    <label>Email<input type="email" name="email" required></label>',
        '    <label>Password<input type="password" name="password" required></label>',
        f'    <button type="submit" class="btn btn-primary">{escape(p.button_text)}</button>',
        "  </form>",
    ]
    if p.show_register_link:
        parts.append('  <p class="auth-switch">No account yet? <a href="/register">Create one</a></p>')
    parts.append("</section>")
    return "\n".join(parts)


def _render_register_form(block: Block, p: b.RegisterFormProps, s: ThemeSettings, children: str) -> str:
    parts = [
        '<section class="auth-form">',
        f'  <h1 class="auth-title">{escape(p.title)}</h1>',
        '  {{#error}}<div class="alert alert-error">{{error}}</div>{{/error}}',
        '  <form id="register-form" class="form" data-auth="register">',
        '    <label>Name<input type="text" name="name" required></label>',
        '    <label>Email<input type="email" name="email" required></label>',
        '    <label>Password<input type="password" name="password" minlength="8" required></label>',
        f'    <button type="submit" class="btn btn-primary">{escape(p.button_text)}</button>',
        "  </form>",
    ]
    if p.show_login_link:
        parts.append('  <p class="auth-switch">Already registered? <a href="/login">Sign in</a></p>')
    parts.append("</section>")
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


def _render_row(block: Block, p: b.RowProps, s: ThemeSettings, children: str) -> str:
    columns = _clamp(p.columns, 1, 6)
    return (
        f'<div class="row grid grid-{columns}" style="gap: {max(0, p.gap)}px;">\n'
        f"{children}\n"
        f"</div>"
    )


def _render_header(block: Block, p: b.HeaderProps, s: ThemeSettings, children: str) -> str:
    sticky = " header-sticky" if p.sticky else ""
    parts = [f'<header class="block-header{sticky}">', '  <div class="container block-header-inner">']
    parts.append(f'    <a href="/" class="block-header-logo">{escape(p.logo_text) if p.logo_text else "{{site.name}}"}</a>')
    if children:
        parts.append(children)
    if p.show_cart:
        parts.append('    <a href="/cart" class="cart-link">Cart <span class="cart-count" data-cart-count>0</span></a>')
    parts.extend(["  </div>", "</header>"])
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

_RENDERERS: dict[BlockType, Callable[[Block, Any, ThemeSettings, str], str]] = {
    BlockType.HERO: _render_hero,
    BlockType.FEATURES: _render_features,
    BlockType.CTA: _render_cta,
    BlockType.TESTIMONIAL: _render_testimonial,
    BlockType.STATS: _render_stats,
    BlockType.IMAGE_TEXT: _render_image_text,
    BlockType.GALLERY: _render_gallery,
    BlockType.BUTTON: _render_button,
    BlockType.DIVIDER: _render_divider,
    BlockType.PRICING: _render_pricing,
    BlockType.NEWSLETTER: _render_newsletter,
    BlockType.CARD: _render_card,
    BlockType.PRODUCT_GRID: _render_product_grid,
    BlockType.COURSE_GRID: _render_course_grid,
    BlockType.AUDIO: _render_audio,
    BlockType.VIDEO: _render_video,
    BlockType.TIMELINE: _render_timeline,
    BlockType.ACCORDION: _render_accordion,
    BlockType.TABS: _render_tabs,
    BlockType.LOGO_CLOUD: _render_logo_cloud,
    BlockType.SOCIAL_PROOF: _render_social_proof,
    BlockType.COUNTDOWN: _render_countdown,
    BlockType.ROW: _render_row,
    BlockType.HEADER: _render_header,
    BlockType.FEATURED_PRODUCT: _render_featured_product,
    BlockType.PRODUCT_CAROUSEL: _render_product_carousel,
    BlockType.COURSE_CARD: _render_course_card,
    BlockType.LOGIN_FORM: _render_login_form,
    BlockType.REGISTER_FORM: _render_register_form,
    BlockType.SALE_BANNER: _render_sale_banner,
    BlockType.HEADING: _render_heading,
    BlockType.TEXT: _render_text,
    BlockType.SPACER: _render_spacer,
    BlockType.CONTACT_FORM: _render_contact_form,
}
