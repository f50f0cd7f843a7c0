"""
Reactive repeater controller.

Adds and removes rows of a rendered ``[data-repeater]`` container. New rows
are clones of the hidden row template: the index placeholder in ``name``,
``id`` and ``for`` is replaced by the next row index, values are cleared and
inputs enabled. The controller dispatches ``repeater:add`` (detail
``{"row", "index"}``) and ``repeater:remove`` (detail ``{"count"}``) from the
container; both bubble, so a ReactiveController on the enclosing form can
bind whatever the new row contains.

Markup:

    <div data-repeater="signup-contacts" data-min-rows="1" data-max-rows="5">
        <div data-repeater-template="" style="display: none;">...</div>
        <div data-repeater-item="">...</div>
        <div data-repeater-add-container=""><button data-repeater-add="">...</div>
    </div>
"""

import copy
import logging
import re
from typing import Any, Dict, List, Optional

from html_formgen.reactive.dom import TEMPLATE_MARKER, Document, DomEvent, Element

logger = logging.getLogger(__name__)

REPEATER_ATTR = "data-repeater"
ITEM_MARKER = "data-repeater-item"
ADD_MARKER = "data-repeater-add"
ADD_CONTAINER_MARKER = "data-repeater-add-container"
REMOVE_MARKER = "data-repeater-remove"
ROW_NUMBER_MARKER = "data-repeater-row-number"

DEFAULT_MAX_ROWS = 10
INDEX_PLACEHOLDER = "__index__"
REINDEXED_ATTRIBUTES = ("id", "name", "for")

ADD_EVENT = "repeater:add"
REMOVE_EVENT = "repeater:remove"

# contacts[0][email] / contacts[0][tags][]
_ROW_NAME = re.compile(r"^[^\[]+\[[^\]]*\]\[([^\]]+)\](\[\])?$")


def repeater_dom_id(form_id: str, name: str) -> str:
    return f"{form_id}-{name}"


def row_input_name(repeater: str, index: str, name: str) -> str:
    """``tags[]`` in row 0 of ``contacts`` becomes ``contacts[0][tags][]``."""
    base, bracket, rest = name.partition("[")
    return f"{repeater}[{index}][{base}]{bracket}{rest}"


class RepeaterController:
    """
    Binds one rendered repeater.

    Row bounds default to the container's ``data-min-rows``/``data-max-rows``.

    Example:
        controller = RepeaterController(document, "signup-contacts")
        controller.init()
        row = controller.add_row()
        controller.get_data()   # [{"contact_name": "", ...}]
    """

    def __init__(self, document: Document, repeater_id: str,
                 min_rows: Optional[int] = None, max_rows: Optional[int] = None):
        self.document = document
        self.repeater_id = repeater_id
        self.min_rows = min_rows
        self.max_rows = max_rows
        self.container: Optional[Element] = None
        self._next_index = 0

    def init(self) -> bool:
        """Bind the add/remove buttons and fill up to ``min_rows``. Returns False if the container is missing."""
        if self.container is not None:
            return True
        container = self.document.query_selector(f'[{REPEATER_ATTR}="{self.repeater_id}"]')
        if container is None:
            logger.warning(f"[RepeaterController] Container not found: {self.repeater_id}")
            return False
        self.container = container

        if self.min_rows is None:
            self.min_rows = int(container.get_attribute("data-min-rows") or 0)
        if self.max_rows is None:
            self.max_rows = int(container.get_attribute("data-max-rows") or DEFAULT_MAX_ROWS)

        self._next_index = self.row_count
        add_button = container.query_selector(f"[{ADD_MARKER}]")
        if add_button is not None:
            add_button.add_event_listener("click", self._on_add)
        for row in self.rows():
            self._bind_remove(row)
        self._update_buttons()

        while self.row_count < self.min_rows:
            if self.add_row() is None:
                break
        logger.debug(f"[RepeaterController] Initialized '{self.repeater_id}' with {self.row_count} rows")
        return True

    # ------------------------------------------------------------------ rows

    def rows(self) -> List[Element]:
        return self.container.child_elements(f"[{ITEM_MARKER}]") if self.container is not None else []

    @property
    def row_count(self) -> int:
        return len(self.rows())

    def add_row(self) -> Optional[Element]:
        """Clone the template into a new row. Returns None at ``max_rows`` or without a template."""
        if self.container is None:
            logger.warning(f"[RepeaterController] add_row before init on '{self.repeater_id}'")
            return None
        if self.row_count >= self.max_rows:
            logger.warning(f"[RepeaterController] Maximum number of rows reached ({self.max_rows})")
            return None
        template = self.container.query_selector(f":scope > [{TEMPLATE_MARKER}]")
        if template is None:
            logger.error(f"[RepeaterController] Template not found in '{self.repeater_id}'")
            return None

        index = self._next_index
        row = copy.copy(template)
        row.remove_attribute(TEMPLATE_MARKER)
        row.set_attribute(ITEM_MARKER, True)
        row.set_style("display", "")
        self._reindex(row, index)
        for control in row.iter_inputs():
            control.set_disabled(False)
            self._clear(control)

        add_container = self.container.query_selector(f":scope > [{ADD_CONTAINER_MARKER}]")
        if add_container is not None:
            add_container.insert_before(row)
        else:
            self.container.append(row)

        self._bind_remove(row)
        self._next_index += 1
        self._update_buttons()
        self.container.dispatch_event(DomEvent(ADD_EVENT, detail={"row": row, "index": index}))
        return row

    def remove_row(self, row: Element) -> bool:
        """Remove ``row``. Refused (False) at ``min_rows`` or for an element that is not a row."""
        if self.container is None or row.parent is not self.container or not row.has_attribute(ITEM_MARKER):
            logger.warning(f"[RepeaterController] {row.describe()} is not a row of '{self.repeater_id}'")
            return False
        if self.row_count <= self.min_rows:
            logger.warning(f"[RepeaterController] Minimum number of rows required ({self.min_rows})")
            return False

        row.extract()
        self._update_buttons()
        self.container.dispatch_event(DomEvent(REMOVE_EVENT, detail={"count": self.row_count}))
        return True

    def get_data(self) -> List[Dict[str, Any]]:
        """Row values keyed by field name; unchecked checkables are left out."""
        data = []
        for row in self.rows():
            values: Dict[str, Any] = {}
            for control in row.iter_inputs():
                match = _ROW_NAME.match(control.get_attribute("name") or "")
                if match is None:
                    continue
                key, is_list = match.group(1), bool(match.group(2))
                if control.is_checkable and not control.is_checked():
                    continue
                value = control.get_value()
                if is_list:
                    values.setdefault(key, []).extend(value if isinstance(value, list) else [value])
                else:
                    values[key] = value
            data.append(values)
        return data

    # ------------------------------------------------------------- internals

    def _on_add(self, event: DomEvent) -> None:
        self.add_row()

    def _bind_remove(self, row: Element) -> None:
        button = row.query_selector(f"[{REMOVE_MARKER}]")
        if button is not None:
            button.add_event_listener("click", lambda event: self.remove_row(row))

    def _update_buttons(self) -> None:
        count = self.row_count
        add_button = self.container.query_selector(f"[{ADD_MARKER}]")
        if add_button is not None:
            add_button.set_disabled(count >= self.max_rows)
        for row in self.rows():
            button = row.query_selector(f"[{REMOVE_MARKER}]")
            if button is not None:
                button.set_disabled(count <= self.min_rows)

    @staticmethod
    def _reindex(row: Element, index: int) -> None:
        for element in (row, *row.find_all(True)):
            for name in REINDEXED_ATTRIBUTES:
                value = element.get_attribute(name)
                if value and INDEX_PLACEHOLDER in value:
                    element.set_attribute(name, value.replace(INDEX_PLACEHOLDER, str(index)))
        number = row.query_selector(f"[{ROW_NUMBER_MARKER}]")
        if number is not None:
            number.string = f"#{index + 1}"

    @staticmethod
    def _clear(control: Element) -> None:
        if control.is_checkable:
            control.set_checked(False)
        elif control.name == "select":
            control.set_value([])
        elif control.element_type != "hidden":
            control.set_value("")
