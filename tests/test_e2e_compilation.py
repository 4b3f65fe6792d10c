"""
End-to-end compilation tests

Tests the full pipeline: component files → Parser → frontmatter → nested
components → template engine → RenderResult

Validates that pages built from several component files render the
expected markup, collect their assets and report redirects.
"""

import pytest

from gastro.config import AppSettings
from gastro.lib.compiler import Compiler, render
from gastro.lib.errors import CompileError
from gastro.models.component import Script, Style
from gastro.models.environment import Environment, FunctionRegistry, Redirect
from gastro.models.host import RequestContext


CARD = """
<div>{title}<slot/></div>
<style>.card { padding: 1em; }</style>
"""


@pytest.fixture
def site(tmp_path):
    """Write component files under a temporary project and return a writer"""

    def write(name, content):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    write("components/Card.gxc", CARD)
    write.root = tmp_path
    return write


def compile_page(site, source, settings=None, **kwargs):
    page = site("pages/index.gxc", source)
    compiler = Compiler(site.root, settings=settings or AppSettings(), verbosity=0)
    return compiler.compile(page, **kwargs)


class TestPageCompilation:
    """Test complete page compilation"""

    def test_frontmatter_and_template(self, site):
        """Example: var title renders into the heading"""
        result = compile_page(site, '---\nvar title = "Hi"\n---\n<h1>{title}</h1>')
        assert result.html == "<h1>Hi</h1>"
        assert result.redirect is None
        assert not result.shouldRedirect

    def test_directives(self, site):
        source = (
            '---\nvar items = []string{"a", "b"}\nshow := 0\n---\n'
            '<ul><li for={x in items}>{x}</li></ul><p if={show}>hidden</p>'
        )
        assert compile_page(site, source).html == "<ul><li>a</li><li>b</li></ul>"

    def test_props_for_top_level(self, site):
        result = compile_page(site, "<p>{name}</p>", props={"name": "Ada"})
        assert result.html == "<p>Ada</p>"

    def test_prop_wins_over_frontmatter_in_template(self, site):
        """Frontmatter sees the prop, the template sees the prop again"""
        source = '---\nseen := name\nname = "Bob"\n---\n<p>{name} {seen}</p>'
        result = compile_page(site, source, props={"name": "Ada"})
        assert result.html == "<p>Ada Ada</p>"

    def test_nested_prop_wins_over_child_frontmatter(self, site):
        site("components/Greet.gxc", '---\nwho = "default"\n---\n<b>{who}</b>')
        assert compile_page(site, '<Greet who="Ada"/>').html == "<b>Ada</b>"

    def test_frontmatter_error(self, site):
        with pytest.raises(CompileError, match="frontmatter of") as excinfo:
            compile_page(site, "---\nx := missing\n---\n<p/>")
        assert excinfo.value.path.endswith("index.gxc")

    def test_unreadable_file(self, site):
        compiler = Compiler(site.root, settings=AppSettings(), verbosity=0)
        with pytest.raises(CompileError, match="cannot read component"):
            compiler.compile(site.root / "pages/absent.gxc")

    def test_invalid_utf8_file(self, site):
        page = site.root / "pages/index.gxc"
        page.parent.mkdir(parents=True, exist_ok=True)
        page.write_bytes(b"<p>\xff\xfe</p>")
        compiler = Compiler(site.root, settings=AppSettings(), verbosity=0)
        with pytest.raises(CompileError, match="cannot read component"):
            compiler.compile(page)

    def test_request_and_registry(self, site):
        registry = FunctionRegistry()
        registry.register("models", "Greeting", lambda name: f"Hello {name}")
        env = Environment(registry=registry, request=RequestContext("GET", "/blog/post"))
        source = '---\nimport "models"\ng := models.Greeting("Ada")\n---\n<p>{g} at {Request.Path()}</p>'
        assert compile_page(site, source, env=env).html == "<p>Hello Ada at /blog/post</p>"


class TestRedirect:
    """Test redirect handling"""

    def test_top_level_redirect(self, site):
        """Example: a redirect yields no markup"""
        source = (
            '---\nif Galaxy.Locals.user == nil {\n  Galaxy.redirect("/login", 302)\n}\n---\n'
            "<Card title=\"never\">x</Card>"
        )
        result = compile_page(site, source, env=Environment(locals={"user": None}))
        assert result.redirect == Redirect("/login", 302)
        assert result.shouldRedirect
        assert result.html == ""

    def test_no_redirect_when_condition_false(self, site):
        source = '---\nif Galaxy.Locals.user == nil {\n  Galaxy.redirect("/login", 302)\n}\n---\n<p>ok</p>'
        result = compile_page(site, source, env=Environment(locals={"user": "ada"}))
        assert result.redirect is None
        assert result.html == "<p>ok</p>"

    def test_nested_redirect_ignored(self, site):
        site("components/Guard.gxc", '---\nredirect("/elsewhere", 302)\n---\n<b>guarded</b>')
        result = compile_page(site, "<main><Guard/></main>")
        assert result.redirect is None
        assert result.html == "<main><b>guarded</b></main>"


class TestNestedComponents:
    """Test component tags, props and slots"""

    def test_card_with_slot(self, site):
        """Example: <Card title="T">body</Card> renders <div>Tbody</div>"""
        assert compile_page(site, '<Card title="T">body</Card>').html == "<div>Tbody</div>"

    def test_self_closing_without_slot(self, site):
        assert compile_page(site, '<Card title="T" />').html == "<div>T</div>"

    def test_expression_props(self, site):
        source = '---\ncount := 21\n---\n<Card title={count * 2}/>'
        assert compile_page(site, source).html == "<div>42</div>"

    def test_unevaluable_expression_prop_passed_as_text(self, site):
        assert compile_page(site, "<Card title={nope}/>").html == "<div>nope</div>"

    def test_flag_prop(self, site):
        site("components/Toggle.gxc", "<i if={on}>on</i><i if={!on}>off</i>")
        assert compile_page(site, "<Toggle on />").html == "<i>on</i>"

    def test_list_prop_drives_loop(self, site):
        site("components/List.gxc", "<ul><li for={i in items}>{i}</li></ul>")
        source = '---\nxs := []string{"a", "b"}\n---\n<List items={xs}/>'
        assert compile_page(site, source).html == "<ul><li>a</li><li>b</li></ul>"

    def test_slot_content_interpolated_in_caller_scope(self, site):
        source = '---\nname := "Ada"\n---\n<Card title="T">Hi {name}</Card>'
        assert compile_page(site, source).html == "<div>THi Ada</div>"

    def test_child_scope_is_isolated(self, site):
        site("components/Secret.gxc", "<p>{hidden}</p>")
        source = '---\nhidden := "parent"\n---\n<Secret/>'
        assert compile_page(site, source).html == "<p>{hidden}</p>"

    def test_nested_component_in_slot(self, site):
        source = '<Card title="Outer"><Card title="Inner">x</Card></Card>'
        assert compile_page(site, source).html == "<div>Outer<div>Innerx</div></div>"

    def test_sibling_components(self, site):
        source = '<Card title="A"/><Card title="B">b</Card>'
        assert compile_page(site, source).html == "<div>A</div><div>Bb</div>"

    def test_child_markup_not_reprocessed_by_parent(self, site):
        site("components/Raw.gxc", '---\nt := "{title}"\n---\n<p>{t}</p>')
        source = '---\ntitle := "parent"\n---\n<Raw/>'
        assert compile_page(site, source).html == "<p>{title}</p>"

    def test_explicit_import(self, site):
        site("widgets/Fancy.gxc", "<em><slot/></em>")
        source = '---\nimport Shiny from "@/widgets/Fancy.gxc"\n---\n<Shiny>x</Shiny>'
        assert compile_page(site, source).html == "<em>x</em>"

    def test_relative_import(self, site):
        site("pages/parts/Header.gxc", "<header/>")
        source = '---\nimport Header from "./parts/Header.gxc"\n---\n<Header/>'
        assert compile_page(site, source).html == "<header/>"

    def test_sibling_lookup(self, site):
        site("pages/Local.gxc", "<aside>local</aside>")
        assert compile_page(site, "<Local/>").html == "<aside>local</aside>"


class TestFailureContainment:
    """Test error comments, strict mode and depth limits"""

    def test_missing_component_renders_comment(self, site):
        html = compile_page(site, "<p>a</p><Ghost/><p>b</p>").html
        assert html.startswith("<p>a</p><!-- Error rendering Ghost: component Ghost not found")
        assert html.endswith("--><p>b</p>")

    def test_error_comments_disabled(self, site):
        settings = AppSettings(error_comments=False)
        assert compile_page(site, "<p>a</p><Ghost/>", settings=settings).html == "<p>a</p>"

    def test_child_frontmatter_error_contained(self, site):
        site("components/Broken.gxc", "---\nx := 1 / 0\n---\n<p/>")
        html = compile_page(site, "<Broken/>").html
        assert "Error rendering Broken" in html
        assert "division by zero" in html

    def test_undecodable_child_contained(self, site):
        (site.root / "components/Bad.gxc").write_bytes(b"<p>\xff\xfe</p>")
        html = compile_page(site, "<main><Bad/></main>").html
        assert html.startswith("<main><!-- Error rendering Bad: cannot read component")
        assert html.endswith("--></main>")

    def test_strict_mode_missing_component(self, site):
        with pytest.raises(CompileError, match="error rendering Ghost"):
            compile_page(site, "<Ghost/>", settings=AppSettings(strict_mode=True))

    def test_strict_mode_child_failure(self, site):
        site("components/Broken.gxc", "---\nx := 1 / 0\n---\n<p/>")
        with pytest.raises(CompileError, match="division by zero"):
            compile_page(site, "<Broken/>", settings=AppSettings(strict_mode=True))

    def test_max_depth(self, site):
        site("components/Loop.gxc", "<div><Loop/></div>")
        html = compile_page(site, "<Loop/>", settings=AppSettings(max_depth=3)).html
        assert html.count("<div>") == 3
        assert "maximum component depth 3 exceeded" in html


class TestAssets:
    """Test style and script collection"""

    def test_styles_collected_and_deduplicated(self, site):
        source = '<Card title="A"/><Card title="B"/>\n<style>main { margin: 0; }</style>'
        result = compile_page(site, source)
        assert result.styles == (
            Style("main { margin: 0; }"),
            Style(".card { padding: 1em; }"),
        )
        assert "<style>" not in result.html

    def test_scripts_collected(self, site):
        site("components/Widget.gxc", '<b/>\n<script type="module">init()</script>')
        source = '<Widget/><Widget/>\n<script>boot()</script>'
        result = compile_page(site, source)
        assert result.scripts == (Script("boot()"), Script("init()", isModule=True))

    def test_failed_child_contributes_no_assets(self, site):
        site("components/Broken.gxc", "---\nx := nope\n---\n<p/>\n<style>.b {}</style>")
        assert compile_page(site, "<Broken/>").styles == ()


class TestCache:
    """Test parsed-component caching"""

    def test_cached_until_cleared(self, site):
        page = site("pages/index.gxc", "<p>one</p>")
        compiler = Compiler(site.root, settings=AppSettings(), verbosity=0)
        assert compiler.compile(page).html == "<p>one</p>"

        page.write_text("<p>two</p>")
        assert compiler.compile(page).html == "<p>one</p>"

        compiler.cache_clear(page)
        assert compiler.compile(page).html == "<p>two</p>"

    def test_clear_all_rescans_index(self, site):
        page = site("pages/index.gxc", "<New/>")
        compiler = Compiler(site.root, settings=AppSettings(), verbosity=0)
        assert "Error rendering New" in compiler.compile(page).html

        site("components/New.gxc", "<p>new</p>")
        compiler.cache_clear()
        assert compiler.compile(page).html == "<p>new</p>"

    def test_repeated_compiles_are_independent(self, site):
        page = site("pages/index.gxc", "<p>{name}</p>")
        compiler = Compiler(site.root, settings=AppSettings(), verbosity=0)
        assert compiler.compile(page, props={"name": "a"}).html == "<p>a</p>"
        assert compiler.compile(page).html == "<p>{name}</p>"


class TestRenderFunction:
    """Test the module-level render() entry point"""

    def test_render_source_text(self):
        """Example: render() accepts raw component source"""
        result = render('---\nvar title = "Hi"\n---\n<h1>{title}</h1>')
        assert result.html == "<h1>Hi</h1>"

    def test_render_with_base_dir(self, site):
        result = render('<Card title="T">body</Card>', base_dir=site.root)
        assert result.html == "<div>Tbody</div>"
        assert result.styles == (Style(".card { padding: 1em; }"),)

    def test_render_with_env_registry(self):
        registry = FunctionRegistry()
        registry.register("util", "Upper", lambda s: s.upper())
        env = Environment(registry=registry)
        result = render('---\nimport "util"\nx := util.Upper("hi")\n---\n{x}', env=env)
        assert result.html == "HI"

    def test_render_slots(self):
        assert render("<main><slot/></main>", slots={"default": "content"}).html == "<main>content</main>"
