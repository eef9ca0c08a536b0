"""Tests for template rendering."""

import pendulum

from notebridge.service.render import TemplateResolver, render

MOMENT = pendulum.datetime(2024, 3, 5, 14, 30, tz="UTC")


class TestRender:
    def test_substitutes_variables(self):
        rendered = render("# {{title}} ({{ count }})", {"title": "Trip", "count": 3})

        assert rendered == "# Trip (3)"

    def test_unknown_and_none_render_empty(self):
        assert render("[{{missing}}|{{nothing}}]", {"nothing": None}) == "[|]"

    def test_value_formatting(self):
        rendered = render(
            "{{flag}} {{items}} {{when}}",
            {"flag": False, "items": ["a", "b"], "when": MOMENT},
        )

        assert rendered == "false a, b 2024-03-05 14:30"

    def test_date_placeholders(self):
        template = "{{date}} / {{date:dddd, MMMM D, YYYY}} / {{date:HH:mm}}"

        assert render(template, {}, MOMENT) == "2024-03-05 / Tuesday, March 5, 2024 / 14:30"

    def test_date_without_moment(self):
        assert render("[{{date}}]", {}) == "[]"

    def test_date_format_on_datetime_variable(self):
        assert render("{{created:YYYY}}", {"created": MOMENT}) == "2024"

    def test_date_variable_overrides_moment(self):
        assert render("{{date}}", {"date": "today"}, MOMENT) == "today"


class TestTemplateResolver:
    def test_default_when_no_custom_template(self, vault):
        assert TemplateResolver(vault).resolve(None, "default") == "default"

    def test_reads_custom_template_from_vault(self, vault):
        vault.write("Templates/page.md", "custom {{title}}")

        assert TemplateResolver(vault).resolve("Templates/page.md", "default") == "custom {{title}}"

    def test_missing_custom_template_falls_back(self, vault):
        assert TemplateResolver(vault).resolve("Templates/missing.md", "default") == "default"

    def test_cached_until_cleared(self, vault):
        vault.write("Templates/page.md", "first")
        resolver = TemplateResolver(vault)
        assert resolver.resolve("Templates/page.md", "default") == "first"

        vault.write("Templates/page.md", "second")
        assert resolver.resolve("Templates/page.md", "default") == "first"

        resolver.clear()
        assert resolver.resolve("Templates/page.md", "default") == "second"
