"""
ThemeForge Stylesheet -- Token Variables and Layering

Every token becomes a :root variable, structural rules follow, one
responsive breakpoint, and custom CSS lands last so it wins by source order.
"""

from themeforge.kernel.stylesheet import BREAKPOINT_PX, generate_stylesheet, hex_to_rgb, shadow_levels
from themeforge.kernel.tokens import ThemeSettings


def css_for(settings_dict=None, custom_css=None):
    return generate_stylesheet(ThemeSettings.from_dict(settings_dict or {}), custom_css)


class TestVariables:
    def test_primary_color_variable(self):
        assert "--color-primary: #123456;" in css_for({"colors": {"primary": "#123456"}})

    def test_defaults_fill_missing_tokens(self):
        css = css_for({})
        assert "--color-primary: #2563eb;" in css
        assert "--font-size-base: 16px;" in css
        assert "--border-radius: 8px;" in css

    def test_typography_and_spacing(self):
        css = css_for(
            {
                "typography": {"headingFont": "Playfair Display", "baseFontSize": 18, "lineHeight": 1.5},
                "spacing": {"sectionPadding": 80},
                "borders": {"radius": 0, "width": 2},
            }
        )
        assert "--font-heading: 'Playfair Display'" in css
        assert "--font-size-base: 18px;" in css
        assert "--line-height: 1.5;" in css
        assert "--section-padding: 80px;" in css
        assert "--border-radius: 0px;" in css
        assert "--border-width: 2px;" in css

    def test_heading_size_override(self):
        css = css_for({"typography": {"h1Size": 48}})
        assert "--font-size-h1: 48px;" in css
        assert "--font-size-h2: 2rem;" in css

    def test_shadows_are_computed_from_text_color(self):
        css = css_for({"colors": {"text": "#102030"}})
        assert "rgba(16, 32, 48, 0.05)" in css
        assert set(shadow_levels("#000")) == {"sm", "md", "lg"}

    def test_hex_parsing(self):
        assert hex_to_rgb("#fff") == (255, 255, 255)
        assert hex_to_rgb("not-a-color") is None

    def test_values_cannot_break_out_of_declarations(self):
        css = css_for({"colors": {"primary": "red; } body { display:none"}})
        assert "display:none" in css
        assert "red; }" not in css

    def test_wrong_typed_tokens_fall_back(self):
        css = css_for({"typography": {"baseFontSize": "huge"}, "layout": {"sidebarPosition": "top"}})
        assert "--font-size-base: 16px;" in css
        assert ".layout-sidebar-left" in css

    def test_component_overrides(self):
        css = css_for({"components": {"buttons": {"borderRadius": 999}}})
        assert "--buttons-border-radius: 999px;" in css

    def test_dark_mode_colors(self):
        css = css_for({"darkMode": {"colors": {"background": "#000000"}}})
        assert "prefers-color-scheme: dark" in css
        assert "--color-background: #000000;" in css


class TestLayering:
    def test_custom_css_is_appended_last(self):
        css = css_for({}, ".hero { color: hotpink; }")
        assert css.rstrip().endswith(".hero { color: hotpink; }")
        assert css.index(":root") < css.index("hotpink")

    def test_no_custom_css_section_when_empty(self):
        assert "Custom CSS" not in css_for({}, "   ")

    def test_single_max_width_breakpoint(self):
        css = css_for({})
        assert css.count("@media (max-width:") == 1
        assert f"@media (max-width: {BREAKPOINT_PX}px)" in css

    def test_responsive_mobile_overrides(self):
        css = css_for({"responsive": {"mobile": {"baseFontSize": 14}}})
        media = css[css.index("@media (max-width:") :]
        assert "--font-size-base: 14px;" in media

    def test_sticky_header_rules(self):
        assert "position: sticky" in css_for({"layout": {"headerStyle": "sticky"}})
