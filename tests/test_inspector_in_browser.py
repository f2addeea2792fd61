import time
from typing import Any, Iterator

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from elementsnip.config import SnipConfig
from elementsnip.page_scripts import DISABLE_SCRIPT, IS_ACTIVE_SCRIPT, build_enable_script, build_install_script
from elementsnip.playwright_host import PlaywrightInspector
from elementsnip.runtime_checks import is_missing_browser_error

HIGHLIGHT = SnipConfig(highlight_fill="rgb(1, 2, 3)", highlight_outline="2px solid rgb(4, 5, 6)", restore_delay_ms=100)

CAPTURE_SINK = """
() => {
  window.__captured = [];
  window.pageClicks = 0;
  window.__elementsnipDeliver = (payload) => window.__captured.push(payload);
}
"""


@pytest.fixture(scope="module")
def browser() -> Iterator[Any]:
    with sync_playwright() as playwright:
        try:
            browser = playwright.chromium.launch(headless=True)
        except PlaywrightError as exc:
            reason = "Chromium is not installed for Playwright." if is_missing_browser_error(exc) else str(exc)
            pytest.skip(reason)
        yield browser
        browser.close()


@pytest.fixture
def page(browser: Any) -> Iterator[Any]:
    context = browser.new_context(viewport={"width": 800, "height": 600}, device_scale_factor=1)
    page = context.new_page()
    yield page
    context.close()


def _open(page: Any, body: str) -> None:
    page.set_content(f"<html><head></head><body style='margin:0'>{body}</body></html>")
    page.evaluate(CAPTURE_SINK)
    assert page.evaluate(build_enable_script(HIGHLIGHT)) is True


def _captured(page: Any) -> list[dict[str, Any]]:
    return page.evaluate("window.__captured")


def _inline(page: Any, selector: str) -> dict[str, Any]:
    return page.eval_on_selector(
        selector,
        "(el) => ({background: el.style.background, outline: el.style.outline, style: el.getAttribute('style')})",
    )


def _call(page: Any, extractor: str, selector: str) -> Any:
    page.evaluate(build_install_script())
    return page.eval_on_selector(selector, f"(el) => window.__elementsnip.extractors.{extractor}(el)")


COUNTED_BUTTON = '<button id="target" onclick="window.pageClicks += 1">Go</button>'


def test_enable_twice_still_emits_one_snapshot_per_click(page: Any) -> None:
    _open(page, COUNTED_BUTTON + '<a id="link" href="#moved">Move</a>')
    assert page.evaluate(build_enable_script(HIGHLIGHT)) is False

    page.click("#target")
    page.click("#link")

    captured = _captured(page)
    assert len(captured) == 2
    assert [item["tagName"] for item in captured] == ["button", "a"]
    assert page.evaluate("window.pageClicks") == 0
    assert page.evaluate("window.location.hash") == ""


def test_snapshot_carries_clean_markup_and_metadata(page: Any) -> None:
    markup = '<p id="para" class="lead intro" title="Hello" aria-label="Intro">Hi <b>there</b></p>'
    _open(page, markup)

    page.click("#para")

    snapshot = _captured(page)[0]
    assert snapshot["html"] == markup
    assert snapshot["tagName"] == "p"
    assert snapshot["className"] == "lead intro"
    assert snapshot["textContent"] == "Hi there"
    assert snapshot["restore"]["outline"] != ""
    assert snapshot["restore"]["background"] != ""
    assert snapshot["xpath"] == '//*[@id="para"]'
    assert snapshot["metadata"]["accessibility"] == {
        "role": "none",
        "tabIndex": -1,
        "ariaLabel": "Intro",
        "altText": "",
        "title": "Hello",
    }
    assert snapshot["metadata"]["domContext"]["parentTag"] == "body"
    assert snapshot["metadata"]["styles"]["layout"]["backgroundColor"] == "rgba(0, 0, 0, 0)"
    assert set(snapshot["location"]) == {"href", "pathname", "search", "hash"}


def test_hover_highlight_is_restored_when_pointer_moves_on(page: Any) -> None:
    _open(page, '<span id="s" style="background: yellow; outline: 1px dashed red">X</span><div id="away">Away</div>')
    before = _inline(page, "#s")

    page.hover("#s")
    highlighted = _inline(page, "#s")
    assert highlighted["outline"] != before["outline"]
    assert "rgb(1, 2, 3)" in highlighted["background"]

    page.hover("#away")
    after = _inline(page, "#s")
    assert after["background"] == before["background"]
    assert after["outline"] == before["outline"]
    assert after["style"] is not None


def test_click_restores_clean_state_then_reasserts_highlight(page: Any) -> None:
    _open(page, '<div id="box">Box</div><div id="away" style="height: 300px">Away</div>')

    page.hover("#box")
    page.click("#box")
    assert _inline(page, "#box") == {"background": "", "outline": "", "style": None}

    page.wait_for_timeout(250)
    assert _inline(page, "#box")["outline"] != ""

    page.hover("#away")
    assert _inline(page, "#box") == {"background": "", "outline": "", "style": None}


def test_deferred_restore_is_skipped_once_pointer_left(page: Any) -> None:
    _open(page, '<div id="box">Box</div><div id="away" style="height: 300px">Away</div>')

    page.click("#box")
    page.hover("#away")
    page.wait_for_timeout(250)

    assert _inline(page, "#box") == {"background": "", "outline": "", "style": None}


PARTIAL_STYLES = (
    '<div id="longhand" style="background-color: red; outline-color: blue">L</div>'
    '<div id="important" style="background-color: green !important; outline: 3px solid black">I</div>'
    '<div id="away" style="height: 300px">Away</div>'
)


def _declared(page: Any, selector: str) -> dict[str, Any]:
    return page.eval_on_selector(
        selector,
        """(el) => ({
          backgroundColor: [el.style.getPropertyValue('background-color'), el.style.getPropertyPriority('background-color')],
          backgroundImage: el.style.getPropertyValue('background-image'),
          outlineColor: [el.style.getPropertyValue('outline-color'), el.style.getPropertyPriority('outline-color')],
          outline: el.style.outline,
          computed: window.getComputedStyle(el).backgroundColor,
        })""",
    )


def test_longhand_and_important_inline_styles_survive_hover(page: Any) -> None:
    _open(page, PARTIAL_STYLES)
    before = {selector: _declared(page, selector) for selector in ("#longhand", "#important")}
    assert before["#longhand"]["computed"] == "rgb(255, 0, 0)"

    for selector in ("#longhand", "#important"):
        page.hover(selector)
        page.hover("#away")
        assert _declared(page, selector) == before[selector]

    assert _declared(page, "#longhand")["backgroundColor"] == ["red", ""]
    assert _declared(page, "#important")["backgroundColor"] == ["green", "important"]


def test_longhand_and_important_inline_styles_survive_click(page: Any) -> None:
    _open(page, PARTIAL_STYLES)
    before = {selector: _declared(page, selector) for selector in ("#longhand", "#important")}

    for selector in ("#longhand", "#important"):
        page.click(selector)
        assert _declared(page, selector) == before[selector]
        page.wait_for_timeout(250)
        assert _declared(page, selector)["computed"] == "rgb(1, 2, 3)"
        page.hover("#away")
        assert _declared(page, selector) == before[selector]

    assert [item["metadata"]["styles"]["layout"]["backgroundColor"] for item in _captured(page)] == [
        "rgb(255, 0, 0)",
        "rgb(0, 128, 0)",
    ]


def test_disable_restores_highlight_and_releases_clicks(page: Any) -> None:
    _open(page, COUNTED_BUTTON)
    page.hover("#target")

    assert page.evaluate(DISABLE_SCRIPT) is True
    assert page.evaluate(DISABLE_SCRIPT) is False
    assert page.evaluate(IS_ACTIVE_SCRIPT) is False
    assert _inline(page, "#target") == {"background": "", "outline": "", "style": None}

    page.click("#target")
    assert page.evaluate("window.pageClicks") == 1
    assert _captured(page) == []

    assert page.evaluate(build_enable_script(HIGHLIGHT)) is True
    page.click("#target")
    assert page.evaluate("window.pageClicks") == 1
    assert len(_captured(page)) == 1


def test_click_is_consumed_when_extractors_fail(page: Any) -> None:
    _open(page, COUNTED_BUTTON)
    page.evaluate("() => { window.getComputedStyle = () => { throw new Error('boom'); }; }")

    page.click("#target")

    captured = _captured(page)
    assert len(captured) == 1
    assert captured[0]["metadata"]["styles"]["font"]["family"] == ""
    assert captured[0]["textContent"] == "Go"
    assert page.evaluate("window.pageClicks") == 0


def test_click_is_consumed_without_a_host_listener(page: Any) -> None:
    _open(page, COUNTED_BUTTON)
    page.evaluate("() => { delete window.__elementsnipDeliver; }")

    page.click("#target")

    assert page.evaluate("window.pageClicks") == 0
    assert _captured(page) == []


def test_deferred_restore_on_detached_element_is_harmless(page: Any) -> None:
    errors: list[Any] = []
    page.on("pageerror", errors.append)
    _open(page, '<div id="gone">Gone</div>')

    page.click("#gone")
    page.evaluate("() => document.getElementById('gone').remove()")
    page.wait_for_timeout(250)

    assert errors == []
    assert len(_captured(page)) == 1


def test_geometry_is_document_relative(page: Any) -> None:
    _open(
        page,
        '<div id="fixed" style="position: fixed; top: 100px; left: 20px; width: 80px; height: 40px">F</div>'
        '<div style="height: 3000px"></div>',
    )

    page.mouse.click(40, 120)
    page.evaluate("() => window.scrollTo(0, 500)")
    page.mouse.click(40, 120)

    first, second = (item["rect"] for item in _captured(page))
    assert first == {"x": 20, "y": 100, "width": 80, "height": 40, "devicePixelRatio": 1}
    assert second["y"] - first["y"] == 500
    assert second["x"] == first["x"]


def test_xpath_resolution(page: Any) -> None:
    page.set_content(
        "<html><body><div><section><ul>"
        "<li>a</li><li class='second'>b</li><li>c</li><span>s</span>"
        "</ul></section><div><div><em id='foo'>x</em></div></div></div></body></html>"
    )

    assert _call(page, "resolveXPath", "li.second") == "/html/body/div/section/ul/li[2]"
    assert _call(page, "resolveXPath", "ul > span") == "/html/body/div/section/ul/span"
    assert _call(page, "resolveXPath", "#foo") == '//*[@id="foo"]'
    assert _call(page, "resolveXPath", "body") == "/html/body"
    assert _call(page, "resolveXPath", "html") == "/html"
    assert _call(page, "resolveXPath", "section") == "/html/body/div/section"


def test_xpath_for_ids_with_quotes_resolves_back_to_the_element(page: Any) -> None:
    page.set_content("<html><body></body></html>")
    ids = ['plain', 'say "hi"', "it's", "it's \"both\""]
    page.evaluate(
        """(ids) => ids.forEach((id, index) => {
          const el = document.createElement('span');
          el.id = id;
          el.dataset.index = String(index);
          document.body.appendChild(el);
        })""",
        ids,
    )
    page.evaluate(build_install_script())

    resolved = page.evaluate(
        """() => Array.from(document.querySelectorAll('span')).map((el) => {
          const xpath = window.__elementsnip.extractors.resolveXPath(el);
          const hit = document.evaluate(xpath, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null);
          return [xpath, hit.singleNodeValue === el];
        })"""
    )

    assert resolved[0] == ['//*[@id="plain"]', True]
    assert resolved[1] == ["//*[@id='say \"hi\"']", True]
    assert resolved[2][1] is True
    assert resolved[3][1] is True
    assert resolved[3][0].startswith("//*[@id=concat(")


def test_install_script_leaves_clicks_alone(page: Any) -> None:
    page.set_content(f"<html><body>{COUNTED_BUTTON}</body></html>")
    page.evaluate(CAPTURE_SINK)

    assert page.evaluate(build_install_script(HIGHLIGHT)) is True
    assert page.evaluate(build_install_script(HIGHLIGHT)) is False
    assert page.evaluate(IS_ACTIVE_SCRIPT) is False
    assert page.evaluate("window.__elementsnip.settings") == {
        "highlightFill": "rgb(1, 2, 3)",
        "highlightOutline": "2px solid rgb(4, 5, 6)",
        "restoreDelayMs": 100,
    }

    page.click("#target")
    assert page.evaluate("window.pageClicks") == 1
    assert _captured(page) == []


def test_text_flattening(page: Any) -> None:
    page.set_content(
        "<html><body>"
        "<div id='a'>A<div>B</div>C</div>"
        "<div id='b'>A<div></div><div></div>B</div>"
        "<p id='c'>Hello <span>big</span>   world</p>"
        "<div id='d'>X<!-- note -->Y</div>"
        "<div id='e'><p>One</p><p>Two</p></div>"
        "</body></html>"
    )

    assert _call(page, "flattenText", "#a") == "A\nB\nC"
    assert _call(page, "flattenText", "#b") == "A\n\nB"
    assert _call(page, "flattenText", "#c") == "Hello big world"
    assert _call(page, "flattenText", "#d") == "X Y"
    assert _call(page, "flattenText", "#e") == "One\n\nTwo"


def test_accessibility_and_dom_context(page: Any) -> None:
    page.set_content(
        "<html><body><ul><li id='x1'>1</li>text<li id='x2'><i>2</i></li><li>3</li></ul>"
        "<img id='logo' alt='Logo' role='img' title='Brand'><button id='b'>B</button></body></html>"
    )

    assert _call(page, "readAccessibility", "#b") == {
        "role": "none",
        "tabIndex": 0,
        "ariaLabel": "",
        "altText": "",
        "title": "",
    }
    logo = _call(page, "readAccessibility", "#logo")
    assert logo["role"] == "img"
    assert logo["altText"] == "Logo"
    assert logo["title"] == "Brand"

    assert _call(page, "readDomContext", "#x2") == {
        "parentTag": "ul",
        "childrenCount": 1,
        "siblings": {"prev": "li", "next": "li"},
        "id": "x2",
    }
    root = _call(page, "readDomContext", "html")
    assert root["parentTag"] is None
    assert root["siblings"] == {"prev": None, "next": None}


def test_style_snapshot_reads_computed_values(page: Any) -> None:
    page.set_content(
        "<html><body><div id='styled' style='padding: 4px 6px; margin: 2px; font-size: 13px;"
        " border: 1px solid black; position: relative; z-index: 3'>S</div></body></html>"
    )

    styles = _call(page, "readStyles", "#styled")
    assert styles["font"]["size"] == "13px"
    assert styles["box"]["padding"] == {"top": "4px", "right": "6px", "bottom": "4px", "left": "6px"}
    assert styles["box"]["margin"]["left"] == "2px"
    assert styles["box"]["border"]["top"] == "1px"
    assert styles["layout"]["display"] == "block"
    assert styles["layout"]["position"] == "relative"
    assert styles["layout"]["zIndex"] == "3"


def test_playwright_inspector_delivers_selection_records(page: Any) -> None:
    received: list[Any] = []
    inspector = PlaywrightInspector(page, received.append, HIGHLIGHT, capture_bitmaps=False)
    inspector.attach()
    page.set_content(f"<html><body>{COUNTED_BUTTON}</body></html>")
    page.evaluate("() => { window.pageClicks = 0; }")

    inspector.set_inspect_mode(True)
    page.click("#target")
    page.wait_for_timeout(200)

    assert len(received) == 1
    assert received[0] is inspector.selections[0]
    snapshot = received[0].snapshot
    assert snapshot.tag_name == "button"
    assert snapshot.text_content == "Go"
    assert snapshot.xpath == '//*[@id="target"]'
    assert received[0].image_png is None
    assert page.evaluate("window.pageClicks") == 0

    inspector.set_inspect_mode(False)
    page.click("#target")
    page.wait_for_timeout(100)
    assert page.evaluate("window.pageClicks") == 1
    assert len(received) == 1


def test_playwright_inspector_reinstalls_after_navigation(page: Any) -> None:
    inspector = PlaywrightInspector(page, config=HIGHLIGHT, capture_bitmaps=False)
    page.set_content("<html><body><p>first</p></body></html>")
    inspector.set_inspect_mode(True)

    page.goto("data:text/html,<html><body><button id='next'>Next</button></body></html>")
    page.wait_for_function("() => !!(window.__elementsnip && window.__elementsnip.active)", timeout=5000)
    page.click("#next")
    page.wait_for_timeout(200)

    assert [record.snapshot.tag_name for record in inspector.selections] == ["button"]


def test_snapshot_element_and_bitmap_without_click(page: Any) -> None:
    inspector = PlaywrightInspector(page, config=HIGHLIGHT)
    page.set_content(
        "<html><body style='margin:0'><div style='height: 900px'></div>"
        "<h1 id='title' style='margin:0; height: 40px'>Title</h1></body></html>"
    )

    snapshot = inspector.snapshot_element("#title")
    assert snapshot is not None
    assert snapshot.tag_name == "h1"
    assert snapshot.rect.y == 900
    assert snapshot.restore.background == ""

    image = inspector.capture_bitmap(snapshot.rect)
    assert image is not None
    assert image.startswith(b"\x89PNG")

    started = time.monotonic()
    assert inspector.snapshot_element("#missing") is None
    assert time.monotonic() - started < 5
