from __future__ import annotations

import json

from .config import SnipConfig

DELIVER_FUNCTION_NAME = "__elementsnipDeliver"

TEXT_FLATTENER_JS = r"""
  const BLOCK_DISPLAYS = new Set(['block', 'flex', 'grid']);

  function isBlockLevel(el) {
    try {
      return BLOCK_DISPLAYS.has(window.getComputedStyle(el).display);
    } catch (_) {
      return false;
    }
  }

  function flattenText(element) {
    const fragments = [];

    function visit(node) {
      if (node.nodeType === Node.TEXT_NODE) {
        const text = (node.textContent || '').trim();
        if (text) {
          fragments.push(text);
        }
        return;
      }
      if (node.nodeType !== Node.ELEMENT_NODE) {
        return;
      }
      const block = isBlockLevel(node);
      if (block && fragments.length > 0) {
        fragments.push('\n');
      }
      node.childNodes.forEach(visit);
      if (block && fragments.length > 0) {
        fragments.push('\n');
      }
    }

    visit(element);
    return fragments
      .join(' ')
      .replace(/[^\S\n]*\n[^\S\n]*/g, '\n')
      .replace(/\n{3,}/g, '\n\n')
      .trim();
  }
"""

GEOMETRY_READER_JS = r"""
  function readGeometry(element) {
    const rect = element.getBoundingClientRect();
    return {
      x: rect.left + window.scrollX,
      y: rect.top + window.scrollY,
      width: rect.width,
      height: rect.height,
      devicePixelRatio: Number(window.devicePixelRatio || 1) || 1,
    };
  }
"""

STYLE_SNAPSHOT_JS = r"""
  function readEdges(style, prefix, suffix) {
    return {
      top: style.getPropertyValue(`${prefix}-top${suffix}`),
      right: style.getPropertyValue(`${prefix}-right${suffix}`),
      bottom: style.getPropertyValue(`${prefix}-bottom${suffix}`),
      left: style.getPropertyValue(`${prefix}-left${suffix}`),
    };
  }

  function readStyles(element) {
    const style = window.getComputedStyle(element);
    return {
      font: {
        family: style.fontFamily,
        size: style.fontSize,
        weight: style.fontWeight,
        color: style.color,
      },
      box: {
        padding: readEdges(style, 'padding', ''),
        margin: readEdges(style, 'margin', ''),
        border: readEdges(style, 'border', '-width'),
      },
      layout: {
        display: style.display,
        position: style.position,
        zIndex: style.zIndex,
        visibility: style.visibility,
        backgroundColor: style.backgroundColor,
      },
    };
  }
"""

ACCESSIBILITY_SNAPSHOT_JS = r"""
  function readAccessibility(element) {
    return {
      role: element.getAttribute('role') || 'none',
      tabIndex: Number.isFinite(element.tabIndex) ? element.tabIndex : -1,
      ariaLabel: element.getAttribute('aria-label') || '',
      altText: element.getAttribute('alt') || '',
      title: element.getAttribute('title') || '',
    };
  }
"""

DOM_CONTEXT_JS = r"""
  function tagOf(node) {
    return node && node.tagName ? node.tagName.toLowerCase() : null;
  }

  function readDomContext(element) {
    return {
      parentTag: tagOf(element.parentElement),
      childrenCount: element.children ? element.children.length : 0,
      siblings: {
        prev: tagOf(element.previousElementSibling),
        next: tagOf(element.nextElementSibling),
      },
      id: element.id || '',
    };
  }
"""

XPATH_RESOLVER_JS = r"""
  function xpathLiteral(value) {
    if (!value.includes('"')) {
      return `"${value}"`;
    }
    if (!value.includes("'")) {
      return `'${value}'`;
    }
    return `concat(${value.split('"').map((piece) => `"${piece}"`).join(", '"', ")})`;
  }

  function resolveXPath(element) {
    if (element.id) {
      return `//*[@id=${xpathLiteral(element.id)}]`;
    }
    if (element === document.body) {
      return '/html/body';
    }

    let path = '';
    let current = element;
    while (current && current.parentElement) {
      const tag = current.tagName.toLowerCase();
      const sameTag = Array.from(current.parentElement.children).filter(
        (sibling) => sibling.tagName === current.tagName
      );
      const index = sameTag.length > 1 ? `[${sameTag.indexOf(current) + 1}]` : '';
      path = `/${tag}${index}${path}`;
      current = current.parentElement;
    }
    return `/html${path}`;
  }
"""

HIGHLIGHT_CONTROLLER_JS = r"""
  const HIGHLIGHT_PROPERTY = /^(background|outline)(-|$)/;

  function highlightPropertyNames(style) {
    const names = [];
    for (let i = 0; i < style.length; i += 1) {
      const name = style.item(i);
      if (HIGHLIGHT_PROPERTY.test(name)) {
        names.push(name);
      }
    }
    return names;
  }

  // Longhands with their priority; shorthand getters read '' when only some are set.
  function captureInline(element) {
    const style = element.style;
    return {
      background: style.background,
      outline: style.outline,
      entries: highlightPropertyNames(style).map((name) => [
        name,
        style.getPropertyValue(name),
        style.getPropertyPriority(name),
      ]),
    };
  }

  function writeInline(element, entries) {
    const style = element.style;
    highlightPropertyNames(style).forEach((name) => style.removeProperty(name));
    entries.forEach(([name, value, priority]) => style.setProperty(name, value, priority));
  }

  function createHighlightController(settings) {
    const state = {
      active: true,
      current: null,
      saved: null,
    };

    function writeSaved() {
      const el = state.current;
      const saved = state.saved;
      writeInline(el, saved.inline.entries);
      if (!saved.hadStyleAttribute && el.getAttribute('style') === '') {
        el.removeAttribute('style');
      }
    }

    function release() {
      if (!state.current) {
        return;
      }
      writeSaved();
      state.current = null;
      state.saved = null;
    }

    return {
      get current() {
        return state.current;
      },

      onHoverEnter(element) {
        if (!state.active || !element || !element.style) {
          return;
        }
        release();
        state.current = element;
        state.saved = {
          inline: captureInline(element),
          hadStyleAttribute: element.hasAttribute('style'),
        };
        element.style.setProperty('background', settings.highlightFill, 'important');
        element.style.setProperty('outline', settings.highlightOutline, 'important');
      },

      onHoverExit(element) {
        if (element !== state.current) {
          return;
        }
        release();
      },

      suspend(element) {
        if (!element.style) {
          return { background: '', outline: '', entries: null };
        }
        const inline = captureInline(element);
        if (element === state.current) {
          writeSaved();
        }
        return inline;
      },

      resume(element, inline) {
        if (!state.active || element !== state.current || !inline.entries) {
          return;
        }
        writeInline(element, inline.entries);
      },

      disable() {
        release();
        state.active = false;
      },
    };
  }
"""

SELECTION_COORDINATOR_JS = r"""
  function emptyRect() {
    return { x: 0, y: 0, width: 0, height: 0, devicePixelRatio: Number(window.devicePixelRatio || 1) || 1 };
  }

  function emptyEdges() {
    return { top: '', right: '', bottom: '', left: '' };
  }

  function emptyStyles() {
    return {
      font: { family: '', size: '', weight: '', color: '' },
      box: { padding: emptyEdges(), margin: emptyEdges(), border: emptyEdges() },
      layout: { display: '', position: '', zIndex: '', visibility: '', backgroundColor: '' },
    };
  }

  function emptyAccessibility() {
    return { role: 'none', tabIndex: -1, ariaLabel: '', altText: '', title: '' };
  }

  function emptyDomContext() {
    return { parentTag: null, childrenCount: 0, siblings: { prev: null, next: null }, id: '' };
  }

  function guarded(read, fallback) {
    try {
      const value = read();
      return value === undefined || value === null ? fallback() : value;
    } catch (_) {
      return fallback();
    }
  }

  function readLocation() {
    return {
      href: window.location.href,
      pathname: window.location.pathname,
      search: window.location.search,
      hash: window.location.hash,
    };
  }

  function buildSnapshot(element, rect, restore) {
    const className = typeof element.className === 'string'
      ? element.className
      : (element.getAttribute('class') || '');
    return {
      html: guarded(() => element.outerHTML, () => ''),
      tagName: guarded(() => element.tagName.toLowerCase(), () => ''),
      className,
      textContent: guarded(() => flattenText(element), () => ''),
      rect: rect || guarded(() => readGeometry(element), emptyRect),
      restore: restore || {
        background: element.style ? element.style.background : '',
        outline: element.style ? element.style.outline : '',
      },
      metadata: {
        styles: guarded(() => readStyles(element), emptyStyles),
        accessibility: guarded(() => readAccessibility(element), emptyAccessibility),
        domContext: guarded(() => readDomContext(element), emptyDomContext),
      },
      xpath: guarded(() => resolveXPath(element), () => ''),
      location: guarded(readLocation, () => ({ href: '', pathname: '', search: '', hash: '' })),
    };
  }

  function deliver(snapshot) {
    const sink = window.__elementsnipDeliver;
    if (typeof sink !== 'function') {
      return false;
    }
    try {
      sink(snapshot);
      return true;
    } catch (_) {
      return false;
    }
  }

  function createInspector(settings) {
    const listeners = { over: null, out: null, click: null };
    let highlight = null;

    const inspector = {
      active: false,
      settings,
      extractors: {
        flattenText,
        readGeometry,
        readStyles,
        readAccessibility,
        readDomContext,
        resolveXPath,
        buildSnapshot: (element) => buildSnapshot(element, null, null),
      },
    };

    function onClick(event) {
      event.preventDefault();
      event.stopPropagation();
      event.stopImmediatePropagation();

      const element = event.target;
      if (!element || element.nodeType !== Node.ELEMENT_NODE) {
        return false;
      }

      const rect = guarded(() => readGeometry(element), emptyRect);
      const suspended = guarded(
        () => highlight.suspend(element),
        () => ({ background: '', outline: '', entries: null })
      );
      const restore = { background: suspended.background, outline: suspended.outline };
      deliver(buildSnapshot(element, rect, restore));

      const controller = highlight;
      window.setTimeout(() => {
        try {
          controller.resume(element, suspended);
        } catch (_) {
          // element is gone or no longer styleable
        }
      }, settings.restoreDelayMs);
      return false;
    }

    inspector.enable = () => {
      if (inspector.active) {
        return false;
      }
      highlight = createHighlightController(settings);
      listeners.over = (event) => highlight.onHoverEnter(event.target);
      listeners.out = (event) => highlight.onHoverExit(event.target);
      listeners.click = onClick;
      document.addEventListener('mouseover', listeners.over, true);
      document.addEventListener('mouseout', listeners.out, true);
      document.addEventListener('click', listeners.click, true);
      inspector.active = true;
      return true;
    };

    inspector.disable = () => {
      if (!inspector.active) {
        return false;
      }
      document.removeEventListener('mouseover', listeners.over, true);
      document.removeEventListener('mouseout', listeners.out, true);
      document.removeEventListener('click', listeners.click, true);
      listeners.over = null;
      listeners.out = null;
      listeners.click = null;
      highlight.disable();
      inspector.active = false;
      return true;
    };

    Object.defineProperty(inspector, 'highlighted', {
      get: () => (highlight ? highlight.current : null),
    });

    return inspector;
  }
"""

ENGINE_FRAGMENTS = (
    TEXT_FLATTENER_JS,
    GEOMETRY_READER_JS,
    STYLE_SNAPSHOT_JS,
    ACCESSIBILITY_SNAPSHOT_JS,
    DOM_CONTEXT_JS,
    XPATH_RESOLVER_JS,
    HIGHLIGHT_CONTROLLER_JS,
    SELECTION_COORDINATOR_JS,
)

DISABLE_SCRIPT = r"""
(() => {
  const inspector = window.__elementsnip;
  if (!inspector || typeof inspector.disable !== 'function') {
    return false;
  }
  return inspector.disable();
})()
"""

IS_ACTIVE_SCRIPT = "(() => !!(window.__elementsnip && window.__elementsnip.active))()"


def engine_settings(config: SnipConfig | None = None) -> dict[str, object]:
    resolved = config or SnipConfig()
    return {
        "highlightFill": resolved.highlight_fill,
        "highlightOutline": resolved.highlight_outline,
        "restoreDelayMs": max(0, int(resolved.restore_delay_ms)),
    }


def _build_script(config: SnipConfig | None, tail: str) -> str:
    settings = json.dumps(engine_settings(config), ensure_ascii=True, sort_keys=True)
    return (
        "(() => {\n"
        f"  const settings = {settings};\n"
        + "".join(ENGINE_FRAGMENTS)
        + "\n  let created = false;\n"
        "  if (!window.__elementsnip) {\n"
        "    window.__elementsnip = createInspector(settings);\n"
        "    created = true;\n"
        "  }\n"
        f"{tail}"
        "})()"
    )


def build_install_script(config: SnipConfig | None = None) -> str:
    """Installs the inspector object without attaching listeners.

    Evaluates to ``true`` when the object was created by this call.
    """
    return _build_script(config, "  return created;\n")


def build_enable_script(config: SnipConfig | None = None) -> str:
    """Installs the inspector if needed and turns inspection on.

    Evaluates to ``true`` on the Inactive -> Active transition and ``false``
    when the page was already inspecting.
    """
    return _build_script(config, "  return window.__elementsnip.enable();\n")
