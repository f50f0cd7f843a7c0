"""
Element tree for rendering and reactive evaluation, built on BeautifulSoup.

The renderer builds forms from Elements and serializes them to HTML; the
reactive controllers run against the same trees, or against markup parsed
back with parse_html. Element is a bs4 Tag subclass plugged into the parser
through ``element_classes``, so parsing, CSS selection (soupsieve) and
serialization are bs4's. This module adds what a browser would on top:
inline style access, input state, listeners and event bubbling.

Elements implement the Styleable, InputControl and EventTarget contracts so
the controllers never touch a concrete type.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from html_formgen.protocols.element_protocols import EventTarget, InputContainer, InputControl, Styleable

logger = logging.getLogger(__name__)

PARSER = "html.parser"
INPUT_TAGS = ("input", "select", "textarea")
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})
BOOLEAN_ATTRIBUTES = frozenset({"checked", "disabled", "selected", "required", "multiple", "readonly", "hidden"})

# Inputs inside a repeater row template are never submitted, enabled or cleared
TEMPLATE_MARKER = "data-repeater-template"

# Natural height of an element without children, used by slide transitions
LINE_HEIGHT_PX = 24

Listener = Callable[["DomEvent"], None]


def parse_style(style: str) -> Dict[str, str]:
    declarations: Dict[str, str] = {}
    for part in style.split(";"):
        if ":" in part:
            name, value = part.split(":", 1)
            declarations[name.strip()] = value.strip()
    return declarations


def format_style(style: Dict[str, str]) -> str:
    return " ".join(f"{name}: {value};" for name, value in style.items())


class MarkupFormatter(HTMLFormatter):
    """
    HTML5 output with attributes in insertion order.

    Boolean attributes holding "" render bare (``checked``); every other
    empty attribute keeps its value (``data-dependends=""``).
    """

    def __init__(self):
        super().__init__(entity_substitution=EntitySubstitution.substitute_xml, void_element_close_prefix=None)

    def attributes(self, tag):
        if not tag.attrs:
            return []
        return [
            (name, None if value == "" and name in BOOLEAN_ATTRIBUTES else value)
            for name, value in tag.attrs.items()
        ]


FORMATTER = MarkupFormatter()


class DomEvent:
    """Event dispatched through an element tree. Bubbles unless stopped."""

    def __init__(self, event_type: str, detail: Any = None, bubbles: bool = True):
        self.type = event_type
        self.detail = detail
        self.bubbles = bubbles
        self.target: Optional["Element"] = None
        self.current_target: Optional[EventTarget] = None
        self._stopped = False

    def stop_propagation(self) -> None:
        self._stopped = True

    @property
    def propagation_stopped(self) -> bool:
        return self._stopped

    def __repr__(self) -> str:
        target = self.target.describe() if self.target is not None else None
        return f"DomEvent({self.type!r}, target={target}, detail={self.detail!r})"


class _ReactiveNode(EventTarget):
    """Listeners and selector queries shared by Element and Document."""

    _listeners: Dict[str, List[Listener]]

    def append(self, child):
        """Append ``child`` and return it (bs4's append returns nothing on older releases)."""
        super().append(child)
        return child

    def query_selector_all(self, selector: str) -> List["Element"]:
        return list(self.select(selector))

    def query_selector(self, selector: str) -> Optional["Element"]:
        return self.select_one(selector)

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, ()))

    def dispatch_event(self, event: DomEvent) -> DomEvent:
        event.target = self
        for node in (self, *self.parents):
            if not isinstance(node, _ReactiveNode):
                continue
            event.current_target = node
            for listener in list(node._listeners.get(event.type, ())):
                listener(event)
            if event.propagation_stopped or not event.bubbles:
                break
        return event

    def to_html(self) -> str:
        return self.decode(formatter=FORMATTER)


class Element(_ReactiveNode, Tag, Styleable, InputControl, InputContainer):
    """
    A bs4 Tag with browser-like state.

    Attribute values of ``True`` are stored as "" and render as bare boolean
    attributes (``checked``, ``disabled``); ``False`` and ``None`` remove the
    attribute. Build detached elements with create_element().
    """

    def __init__(self, *args, **kwargs):
        self._listeners = {}
        super().__init__(*args, **kwargs)
        self.indeterminate = self.attrs.get("data-indeterminate") == "true"

    # -------------------------------------------------------------- structure

    def remove(self, child: "Element") -> None:
        if child.parent is self:
            child.extract()

    def ancestors(self) -> Iterator["Element"]:
        return (node for node in self.parents if isinstance(node, Element))

    def root(self) -> Tag:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def closest(self, selector: str) -> Optional["Element"]:
        return self.css.closest(selector)

    def matches(self, selector: str) -> bool:
        return self.css.match(selector)

    def child_elements(self, selector: Optional[str] = None) -> List["Element"]:
        """Direct children, optionally filtered by ``selector``."""
        if selector is None:
            return list(self.find_all(True, recursive=False))
        return list(self.select(f":scope > {selector}"))

    # ------------------------------------------------------------- attributes

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        if value is False or value is None:
            self.attrs.pop(name, None)
        elif value is True:
            self.attrs[name] = ""
        else:
            self.attrs[name] = str(value)

    def has_attribute(self, name: str) -> bool:
        return name in self.attrs

    def remove_attribute(self, name: str) -> None:
        self.attrs.pop(name, None)

    @property
    def element_type(self) -> str:
        """``type`` of an input, the tag name otherwise."""
        if self.name == "input":
            return (self.attrs.get("type") or "text").lower()
        return self.name

    def describe(self) -> str:
        parts = [self.name]
        for name in ("id", "name", "data-dependency-field", "data-field"):
            if name in self.attrs:
                parts.append(f"{name}={self.attrs[name]}")
        return "<" + " ".join(parts) + ">"

    # ---------------------------------------------------------------- Styleable

    def set_style(self, name: str, value: str) -> None:
        style = parse_style(self.attrs.get("style", ""))
        if value == "":
            style.pop(name, None)
        else:
            style[name] = value
        if style:
            self.attrs["style"] = format_style(style)
        else:
            self.attrs.pop("style", None)

    def get_style(self, name: str) -> str:
        return parse_style(self.attrs.get("style", "")).get(name, "")

    @property
    def content_height(self) -> int:
        natural = self.attrs.get("data-natural-height")
        if natural is not None:
            return int(natural)
        children = [c for c in self.child_elements() if c.name not in RAW_TEXT_ELEMENTS]
        if not children:
            return LINE_HEIGHT_PX
        return sum(child.content_height for child in children)

    @property
    def is_displayed(self) -> bool:
        """False when this element or an ancestor has ``display: none``."""
        return all(el.get_style("display") != "none" for el in (self, *self.ancestors()))

    # ------------------------------------------------------------ InputControl

    @property
    def is_checkable(self) -> bool:
        return self.name == "input" and self.element_type in ("checkbox", "radio")

    def get_value(self) -> Any:
        if self.name == "select":
            options = self.find_all("option")
            selected = [o for o in options if o.has_attribute("selected")]
            if self.has_attribute("multiple"):
                return [o.get_attribute("value") or "" for o in selected]
            chosen = selected[0] if selected else (options[0] if options else None)
            if chosen is None:
                return ""
            return chosen.get_attribute("value") or ""
        if self.name == "textarea":
            return self.get_text()
        return self.get_attribute("value") or ""

    def set_value(self, value: Any) -> None:
        if self.name == "select":
            wanted = {str(v) for v in value} if isinstance(value, (list, tuple, set)) else {str(value)}
            for option in self.find_all("option"):
                option.set_attribute("selected", (option.get_attribute("value") or "") in wanted)
        elif self.name == "textarea":
            self.string = "" if value is None else str(value)
        else:
            self.set_attribute("value", "" if value is None else str(value))

    def is_checked(self) -> bool:
        return self.has_attribute("checked")

    def set_checked(self, checked: bool) -> None:
        if checked and self.element_type == "radio":
            name = self.get_attribute("name")
            scope = self.closest("form") or self.root()
            for other in scope.select('input[type="radio"]'):
                if other is not self and other.get_attribute("name") == name:
                    other.set_attribute("checked", False)
        self.set_attribute("checked", bool(checked))

    @property
    def is_input(self) -> bool:
        return self.name in INPUT_TAGS

    def in_template(self, boundary: Optional[Tag] = None) -> bool:
        """True when this element sits in a repeater row template below ``boundary``."""
        for node in (self, *self.ancestors()):
            if node.has_attribute(TEMPLATE_MARKER):
                return True
            if node is boundary:
                return False
        return False

    def iter_inputs(self) -> Iterator["Element"]:
        candidates = [self, *self.find_all(INPUT_TAGS)]
        return (el for el in candidates if el.is_input and not el.in_template(self))

    def set_disabled(self, disabled: bool) -> None:
        self.set_attribute("disabled", bool(disabled))

    def is_disabled(self) -> bool:
        return self.has_attribute("disabled")

    # ------------------------------------------------------- user interaction

    def change(self, value: Any = None, checked: Optional[bool] = None) -> DomEvent:
        """Simulate a user edit followed by a ``change`` event."""
        if checked is not None:
            self.set_checked(checked)
        elif value is not None:
            self.set_value(value)
        return self.dispatch_event(DomEvent("change"))

    def click(self) -> Optional[DomEvent]:
        """Activate the element like a user click. Disabled elements ignore clicks."""
        if self.is_disabled():
            logger.debug(f"[Element] Click on disabled {self.describe()} ignored")
            return None
        if self.element_type == "radio":
            self.set_checked(True)
        elif self.is_checkable:
            self.set_checked(not self.is_checked())
        else:
            return self.dispatch_event(DomEvent("click"))
        return self.dispatch_event(DomEvent("change"))

    def __repr__(self) -> str:
        return f"Element({self.describe()}, children={len(self.child_elements())})"


class Document(_ReactiveNode, BeautifulSoup, InputContainer):
    """A parsed or assembled page. Tags parsed into it are Elements."""

    def __init__(self, markup: str = ""):
        self._listeners = {}
        super().__init__(markup, PARSER, element_classes={Tag: Element}, multi_valued_attributes=None)

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        return self.find(attrs={"id": element_id})

    def create_element(self, name: str, attributes: Optional[Dict[str, Any]] = None,
                       children: Optional[List[Element]] = None, text: Optional[str] = None) -> Element:
        element = self.new_tag(name)
        for key, value in (attributes or {}).items():
            element.set_attribute(key, value)
        for child in children or ():
            element.append(child)
        if text:
            element.append(text)
        return element

    def iter_inputs(self) -> Iterator[Element]:
        return (el for el in self.find_all(INPUT_TAGS) if not el.in_template())

    def __repr__(self) -> str:
        return f"Document(children={len(self.contents)})"


# Source of detached elements; new_tag leaves them without a parent
_FACTORY = Document()


def create_element(name: str, attributes: Optional[Dict[str, Any]] = None,
                   children: Optional[List[Element]] = None, text: Optional[str] = None) -> Element:
    """
    Build a detached Element. Children are appended before ``text``.

    Example:
        label = create_element("label", {"for": "signup-terms"}, [checkbox], text="Accept")
    """
    return _FACTORY.create_element(name, attributes, children, text)


def fragment(*children: Element) -> Document:
    """A parentless group of elements; appending it to an element moves its children."""
    container = Document()
    for child in children:
        container.append(child)
    return container


def parse_html(markup: str) -> Document:
    """Parse rendered markup back into a Document of Elements."""
    return Document(markup)
