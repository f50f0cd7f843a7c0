"""
JavaScript generator for repeater controllers.

The generated Repeater_<id> object mirrors
html_formgen.reactive.repeater_controller.RepeaterController: rows are
cloned from the hidden template, re-indexed, cleared and enabled, and
``repeater:add`` / ``repeater:remove`` bubble from the container.
"""

import logging
from typing import Optional

from html_formgen.core.render_guard import RenderContext, ScriptKind, sanitize_identifier
from html_formgen.protocols.form_config import get_form_config
from html_formgen.reactive.repeater_controller import DEFAULT_MAX_ROWS, INDEX_PLACEHOLDER
from html_formgen.scripts.dependency_script import js_literal, wrap_script

logger = logging.getLogger(__name__)


def repeater_namespace(repeater_id: str) -> str:
    return f"Repeater_{sanitize_identifier(repeater_id)}"


class RepeaterScriptGenerator:
    """Generates the controller script for one repeater."""

    def __init__(self, wrap: Optional[bool] = None):
        self.wrap = get_form_config().wrap_scripts if wrap is None else wrap

    def emit(self, context: RenderContext, repeater_id: str, min_rows: int = 0,
             max_rows: int = DEFAULT_MAX_ROWS) -> str:
        """Script for ``repeater_id``, or "" if this render pass already emitted it."""
        return context.emit_once(
            ScriptKind.REPEATER, repeater_id, lambda: self.generate(repeater_id, min_rows, max_rows)
        )

    def generate(self, repeater_id: str, min_rows: int = 0, max_rows: int = DEFAULT_MAX_ROWS) -> str:
        code = self.generate_code(repeater_id, min_rows, max_rows)
        logger.debug(f"[RepeaterScriptGenerator] Generated controller for repeater '{repeater_id}'")
        return wrap_script(code) if self.wrap else code

    def generate_code(self, repeater_id: str, min_rows: int, max_rows: int) -> str:
        ns = repeater_namespace(repeater_id)
        return f"""
(function() {{
    'use strict';

    /**
     * html-formgen repeater controller
     * Repeater ID: {repeater_id.replace('*/', '* /')}
     */
    const {ns} = {{
        repeaterId: {js_literal(repeater_id)},
        minRows: {int(min_rows)},
        maxRows: {int(max_rows)},
        placeholder: {js_literal(INDEX_PLACEHOLDER)},
        container: null,
        rowIndex: 0,

        init: function() {{
            if (this.container) return;
            const selector = '[data-repeater="' + CSS.escape(this.repeaterId) + '"]';
            const container = document.querySelector(selector);
            if (!container) {{
                console.warn('Repeater: Container not found:', selector);
                return;
            }}
            this.container = container;
            this.rowIndex = this.rows().length;

            const addButton = container.querySelector('[data-repeater-add]');
            if (addButton) {{
                addButton.addEventListener('click', (e) => {{
                    e.preventDefault();
                    this.addRow();
                }});
            }}
            this.rows().forEach((row) => this.attachRemoveListener(row));
            this.updateButtonStates();

            while (this.rows().length < this.minRows) {{
                if (!this.addRow()) break;
            }}
        }},

        rows: function() {{
            return Array.from(this.container.children).filter((row) => row.hasAttribute('data-repeater-item'));
        }},

        addRow: function() {{
            if (!this.container) return null;
            if (this.rows().length >= this.maxRows) {{
                console.warn('Repeater: Maximum number of rows reached (' + this.maxRows + ')');
                return null;
            }}
            const template = this.container.querySelector(':scope > [data-repeater-template]');
            if (!template) {{
                console.error('Repeater: Template not found');
                return null;
            }}

            const index = this.rowIndex;
            const row = template.cloneNode(true);
            row.removeAttribute('data-repeater-template');
            row.setAttribute('data-repeater-item', '');
            row.style.display = '';
            this.reindex(row, index);
            row.querySelectorAll('input, select, textarea').forEach((field) => {{
                field.disabled = false;
                this.clearField(field);
            }});

            const addContainer = this.container.querySelector(':scope > [data-repeater-add-container]');
            if (addContainer) {{
                this.container.insertBefore(row, addContainer);
            }} else {{
                this.container.appendChild(row);
            }}

            this.attachRemoveListener(row);
            this.rowIndex++;
            this.updateButtonStates();
            this.container.dispatchEvent(new CustomEvent('repeater:add', {{
                bubbles: true,
                detail: {{ row: row, index: index }}
            }}));
            return row;
        }},

        removeRow: function(row) {{
            if (!this.container || row.parentElement !== this.container) return false;
            if (this.rows().length <= this.minRows) {{
                console.warn('Repeater: Minimum number of rows required (' + this.minRows + ')');
                return false;
            }}
            row.remove();
            this.updateButtonStates();
            this.container.dispatchEvent(new CustomEvent('repeater:remove', {{
                bubbles: true,
                detail: {{ count: this.rows().length }}
            }}));
            return true;
        }},

        reindex: function(row, index) {{
            [row].concat(Array.from(row.querySelectorAll('*'))).forEach((element) => {{
                ['id', 'name', 'for'].forEach((attribute) => {{
                    const value = element.getAttribute(attribute);
                    if (value && value.indexOf(this.placeholder) !== -1) {{
                        element.setAttribute(attribute, value.split(this.placeholder).join(String(index)));
                    }}
                }});
            }});
            const number = row.querySelector('[data-repeater-row-number]');
            if (number) number.textContent = '#' + (index + 1);
        }},

        clearField: function(field) {{
            if (field.type === 'checkbox' || field.type === 'radio') {{
                field.checked = false;
            }} else if (field.tagName === 'SELECT') {{
                Array.from(field.options).forEach((option) => {{ option.selected = false; }});
            }} else if (field.type !== 'hidden') {{
                field.value = '';
            }}
        }},

        attachRemoveListener: function(row) {{
            const button = row.querySelector('[data-repeater-remove]');
            if (button) {{
                button.addEventListener('click', (e) => {{
                    e.preventDefault();
                    this.removeRow(row);
                }});
            }}
        }},

        updateButtonStates: function() {{
            const count = this.rows().length;
            const addButton = this.container.querySelector('[data-repeater-add]');
            if (addButton) addButton.disabled = count >= this.maxRows;
            this.rows().forEach((row) => {{
                const button = row.querySelector('[data-repeater-remove]');
                if (button) button.disabled = count <= this.minRows;
            }});
        }},

        getData: function() {{
            return this.rows().map((row) => {{
                const data = {{}};
                row.querySelectorAll('input, select, textarea').forEach((field) => {{
                    const match = /^[^\\[]+\\[[^\\]]*\\]\\[([^\\]]+)\\](\\[\\])?$/.exec(field.name || '');
                    if (!match) return;
                    if ((field.type === 'checkbox' || field.type === 'radio') && !field.checked) return;
                    const values = field.tagName === 'SELECT' && field.multiple
                        ? Array.from(field.selectedOptions).map((option) => option.value)
                        : [field.value];
                    if (match[2]) {{
                        data[match[1]] = (data[match[1]] || []).concat(values);
                    }} else {{
                        data[match[1]] = values[0];
                    }}
                }});
                return data;
            }});
        }}
    }};

    // Initialize when DOM is ready
    if (document.readyState === 'loading') {{
        document.addEventListener('DOMContentLoaded', () => {ns}.init());
    }} else {{
        {ns}.init();
    }}

    // Expose API globally for external access
    window.{ns} = {ns};
}})();
"""


def generate_repeater_script(repeater_id: str, min_rows: int = 0, max_rows: int = DEFAULT_MAX_ROWS,
                             wrap: Optional[bool] = None) -> str:
    """Unguarded repeater script for ``repeater_id``."""
    return RepeaterScriptGenerator(wrap).generate(repeater_id, min_rows, max_rows)
