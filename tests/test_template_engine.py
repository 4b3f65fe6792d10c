"""
Template engine tests

Tests the directive, slot and interpolation passes.
"""

import pytest

from gastro.config import AppSettings
from gastro.lib.interpreter import Interpreter
from gastro.lib.template import TemplateEngine
from gastro.models.environment import Environment
from gastro.models.host import HostObject, RequestContext


class Flaky(HostObject):
    ok = "yes"

    @property
    def Name(self):
        raise ValueError("db down")

    def Load(self):
        raise RuntimeError("timeout")


class BrokenRequest(RequestContext):
    def Path(self):
        raise KeyError("path")


def render(template, frontmatter="", env=None, **kwargs):
    env = env if env is not None else Environment()
    if frontmatter:
        Interpreter(env).execute(frontmatter)
    return TemplateEngine(env, kwargs.pop("settings", AppSettings())).render(template, **kwargs)


class TestIdentity:
    """Templates without template syntax render unchanged"""

    @pytest.mark.parametrize("template", [
        "",
        "plain text",
        '<div class="a"><p>Hello</p></div>',
        "<!-- comment --><br/>",
        "a < b and c > d",
        "<style>p {}</style>",
    ])
    def test_identity(self, template):
        assert render(template) == template


class TestInterpolation:
    """Test the {expr} pass"""

    def test_variable(self):
        """Example: var title = "Hi" renders into <h1>"""
        assert render("<h1>{title}</h1>", 'var title = "Hi"') == "<h1>Hi</h1>"

    def test_prop(self):
        env = Environment(props={"name": "Ada"})
        assert render("<p>{name}</p>", env=env) == "<p>Ada</p>"

    def test_props_merged_into_variables(self):
        env = Environment()
        assert render("{a}", env=env, props={"a": 1}) == "1"
        assert env.variable_get("a") == 1
        assert env.prop_get("a") == 1

    def test_dotted_map_path(self):
        assert render("{post.author.name}", 'post := {"author": {"name": "Ada"}}') == "Ada"

    def test_request_capabilities(self):
        env = Environment(request=RequestContext("POST", "/blog?x=1"))
        assert render("{Request.Path()} {Request.Method()} {Request.URL()}", env=env) == "/blog POST /blog?x=1"

    def test_unresolved_left_literal(self):
        assert render("<p>{missing} {a.b} {1 + 2}</p>") == "<p>{missing} {a.b} {1 + 2}</p>"

    def test_failing_host_accessor_left_literal(self):
        """A host field or method that raises leaves the expression as written"""
        env = Environment(variables={"u": Flaky()})
        assert render("<p>{u.Name}|{u.Load()}|{u.ok}</p>", env=env) == "<p>{u.Name}|{u.Load()}|yes</p>"

    def test_failing_request_capability_left_literal(self):
        env = Environment(request=BrokenRequest("GET", "/x"))
        assert render("{Request.Path()} {Request.Method()}", env=env) == "{Request.Path()} GET"

    def test_missing_map_key_left_literal(self):
        assert render("{m.nope}", 'm := {"a": 1}') == "{m.nope}"

    def test_value_formatting(self):
        frontmatter = 'b := true\nn := nil\nf := 2.0\ng := 2.5\nl := []int{1, 2}\nm := {"k": "v"}'
        assert render("{b}|{n}|{f}|{g}|{l}|{m}", frontmatter) == 'true||2|2.5|1, 2|{"k": "v"}'

    def test_escaping_is_opt_in(self):
        frontmatter = 's := "<b>"'
        assert render("{s}", frontmatter) == "<b>"
        assert render("{s}", frontmatter, settings=AppSettings(escape_html=True)) == "&lt;b&gt;"


class TestIfDirective:
    """Test if={cond}"""

    def test_false_removes_element(self):
        """Example: var show = 0 removes the paragraph"""
        assert render("<p if={show}>hi</p>", "var show = 0") == ""

    def test_true_keeps_element_without_attribute(self):
        assert render('<p class="a" if={show} id="b">hi</p>', "show := true") == '<p class="a" id="b">hi</p>'

    @pytest.mark.parametrize("frontmatter, expected", [
        ('v := 1', True),
        ('v := 0.0', False),
        ('v := ""', False),
        ('v := "x"', True),
        ('v := []int{}', False),
        ('v := []int{1}', True),
        ('v := {"a": 1}', True),
        ('v := nil', False),
        ('v := false', False),
    ])
    def test_truthiness(self, frontmatter, expected):
        assert (render("<i if={v}>x</i>", frontmatter) == "<i>x</i>") is expected

    def test_unbound_is_false(self):
        assert render("<i if={nope}>x</i>") == ""

    def test_negation(self):
        assert render("<i if={!nope}>x</i>") == "<i>x</i>"
        assert render("<i if={!v}>x</i>", "v := true") == ""

    def test_namespaced_directive(self):
        assert render("<i galaxy:if={v}>x</i>", "v := false") == ""

    def test_nested_same_tag(self):
        template = '<div if={show}><div class="inner">a</div></div><div>after</div>'
        assert render(template, "show := false") == "<div>after</div>"

    def test_nested_directives_inside_if(self):
        template = "<div if={a}><span if={b}>x</span><span if={a}>y</span></div>"
        assert render(template, "a := true\nb := false") == "<div><span>y</span></div>"

    def test_self_closing(self):
        assert render('<img if={v} src="a.png" />', "v := true") == '<img src="a.png" />'
        assert render('<img if={v} src="a.png" />', "v := false") == ""

    def test_dotted_condition(self):
        assert render("<i if={user.admin}>x</i>", 'user := {"admin": true}') == "<i>x</i>"

    def test_unclosed_element_left_unchanged(self):
        assert render("<div if={v}>x", "v := false") == "<div if={v}>x"

    def test_unclosed_element_body_still_interpolated(self):
        assert render("<div if={v}>{n}", "v := false\nn := 1") == "<div if={v}>1"


class TestForDirective:
    """Test for={item in list}"""

    def test_list(self):
        """Example: one <li> per item, in order"""
        template = "<li for={x in items}>{x}</li>"
        frontmatter = 'var items = []string{"a", "b", "c"}'
        assert render(template, frontmatter) == "<li>a</li><li>b</li><li>c</li>"

    def test_attributes_kept_and_interpolated(self):
        template = '<li galaxy:for={p in posts} class="item" data-id="{p.id}">{p.title}</li>'
        frontmatter = 'posts := []map[string]string{{"id": "1", "title": "A"}, {"id": "2", "title": "B"}}'
        assert render(template, frontmatter) == (
            '<li class="item" data-id="1">A</li><li class="item" data-id="2">B</li>'
        )

    def test_nested_same_tag_body(self):
        template = '<div for={post in posts}><div class="title"><h2>{post.title}</h2></div></div>'
        frontmatter = 'posts := []map[string]string{{"title": "First"}, {"title": "Second"}}'
        assert render(template, frontmatter) == (
            '<div><div class="title"><h2>First</h2></div></div>'
            '<div><div class="title"><h2>Second</h2></div></div>'
        )

    def test_empty_list(self):
        assert render("<ul><li for={x in xs}>{x}</li></ul>", "xs := []int{}") == "<ul></ul>"

    def test_loop_variable_restored(self):
        env = Environment()
        render("<i for={x in xs}>{x}</i>{x}", "x := \"outer\"\nxs := []int{1, 2}", env=env)
        assert env.variable_get("x") == "outer"

    def test_loop_variable_cleared(self):
        env = Environment()
        assert render("<i for={x in xs}>{x}</i>{x}", "xs := []int{1}", env=env) == "<i>1</i>{x}"
        assert not env.variable_has("x")

    def test_prop_list(self):
        env = Environment(props={"tags": ["a", "b"]})
        assert render("<b for={t in tags}>{t}</b>", env=env) == "<b>a</b><b>b</b>"

    def test_non_list_left_unchanged(self):
        template = "<li for={x in items}>{x}</li>"
        assert render(template, 'items := "abc"') == template

    def test_malformed_loop_left_unchanged(self):
        template = "<li for={x of items}>{x}</li>"
        assert render(template, "items := []int{1}") == template

    def test_loop_without_in_left_unchanged(self):
        """The directive attribute is not interpolated even when it names a bound list"""
        template = "<li for={items}>{name}</li>"
        assert render(template, "items := []string{\"a\", \"b\"}\nname := \"n\"") == template

    def test_non_list_attribute_not_interpolated(self):
        template = "<li for={x in items}>{items}</li><p>{items}</p>"
        assert render(template, "items := \"abc\"") == "<li for={x in items}>{items}</li><p>abc</p>"

    def test_nested_directives_not_reevaluated(self):
        """Directives inside a loop body are not processed"""
        template = "<ul for={x in xs}><li if={x.flag}>{x}</li></ul>"
        assert render(template, "xs := []int{1}") == "<ul><li if={x.flag}>1</li></ul>"

    def test_directives_after_loop(self):
        template = "<i for={x in xs}>{x}</i><b if={show}>s</b>"
        assert render(template, "xs := []int{1, 2}\nshow := true") == "<i>1</i><i>2</i><b>s</b>"


class TestSlots:
    """Test the slot pass"""

    def test_default_slot(self):
        assert render("<div><slot/></div>", slots={"default": "body"}) == "<div>body</div>"

    def test_named_slots(self):
        template = "<header><slot name=\"head\"/></header><slot name='foot' />"
        assert render(template, slots={"head": "H", "foot": "F"}) == "<header>H</header>F"

    def test_fallback_content(self):
        assert render("<slot>fallback</slot>") == "fallback"
        assert render("<slot>fallback</slot>", slots={"default": "given"}) == "given"

    def test_missing_slot_is_empty(self):
        assert render('<p><slot name="x"/></p>') == "<p></p>"

    def test_slots_replace_environment_slots(self):
        env = Environment(slots={"default": "old"})
        assert render("<slot/>", env=env, slots={"default": "new"}) == "new"
        assert env.slots == {"default": "new"}
