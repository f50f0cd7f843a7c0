"""
Client-side reactive layer.

A BeautifulSoup-backed element tree (dom), a transition runner and the
dependency, checkbox tree and repeater controllers that run the same
algorithms as the generated scripts.
"""

from .dom import Document, DomEvent, Element, create_element, fragment, parse_html
from .transition_runner import TransitionRunner
from .controller import ReactiveController, SHOWN_EVENT, HIDDEN_EVENT
from .tree_controller import CheckboxTreeController, CHANGE_EVENT
from .repeater_controller import RepeaterController, ADD_EVENT, REMOVE_EVENT

__all__ = [
    "Document",
    "DomEvent",
    "Element",
    "create_element",
    "fragment",
    "parse_html",
    "TransitionRunner",
    "ReactiveController",
    "SHOWN_EVENT",
    "HIDDEN_EVENT",
    "CheckboxTreeController",
    "CHANGE_EVENT",
    "RepeaterController",
    "ADD_EVENT",
    "REMOVE_EVENT",
]
