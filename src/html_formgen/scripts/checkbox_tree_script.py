"""
JavaScript generator for checkbox tree controllers.

The cascade mode is baked into the script, never read back from markup.
The generated CheckboxTree_<id> object mirrors
html_formgen.reactive.tree_controller.CheckboxTreeController.
"""

import logging
from typing import Optional

from html_formgen.core.render_guard import RenderContext, ScriptKind, sanitize_identifier
from html_formgen.protocols.form_config import get_form_config
from html_formgen.scripts.dependency_script import js_literal, wrap_script
from html_formgen.tree.node import CascadeMode

logger = logging.getLogger(__name__)


def tree_namespace(tree_id: str) -> str:
    return f"CheckboxTree_{sanitize_identifier(tree_id)}"


class CheckboxTreeScriptGenerator:
    """Generates the controller script for one checkbox tree."""

    def __init__(self, wrap: Optional[bool] = None):
        self.wrap = get_form_config().wrap_scripts if wrap is None else wrap

    def emit(self, context: RenderContext, tree_id: str, mode: CascadeMode = CascadeMode.CASCADE) -> str:
        """Script for ``tree_id``, or "" if this render pass already emitted it."""
        return context.emit_once(ScriptKind.CHECKBOX_TREE, tree_id, lambda: self.generate(tree_id, mode))

    def generate(self, tree_id: str, mode: CascadeMode = CascadeMode.CASCADE) -> str:
        code = self.generate_code(tree_id, CascadeMode(mode))
        logger.debug(f"[CheckboxTreeScriptGenerator] Generated controller for tree '{tree_id}' ({mode})")
        return wrap_script(code) if self.wrap else code

    def generate_code(self, tree_id: str, mode: CascadeMode) -> str:
        ns = tree_namespace(tree_id)
        return f"""
(function() {{
    'use strict';

    /**
     * html-formgen checkbox tree controller
     * Tree ID: {tree_id.replace('*/', '* /')}
     * Mode: {mode.value}
     */
    const {ns} = {{
        treeId: {js_literal(tree_id)},
        mode: {js_literal(mode.value)},
        tree: null,

        init: function() {{
            if (this.tree) return;
            const selector = '[data-checkbox-tree="' + CSS.escape(this.treeId) + '"]';
            const tree = document.querySelector(selector);
            if (!tree) {{
                console.warn('CheckboxTree: Tree not found:', selector);
                return;
            }}
            this.tree = tree;

            tree.querySelectorAll('input[type="checkbox"]').forEach((checkbox) => {{
                checkbox.addEventListener('change', (e) => this.handleCheckboxChange(e.target));
            }});

            // Set initial state
            this.updateIndeterminateStates();
        }},

        handleCheckboxChange: function(checkbox) {{
            if (checkbox.disabled) {{
                console.warn('CheckboxTree: Rejected toggle of disabled node', checkbox.value);
                checkbox.checked = !checkbox.checked;
                return;
            }}
            if (this.mode === 'cascade') {{
                this.handleCascadeMode(checkbox);
            }}
            this.emitChange(checkbox.value);
        }},

        itemCheckbox: function(item) {{
            return item.querySelector(':scope > label > input[type="checkbox"]')
                || item.querySelector(':scope > input[type="checkbox"]');
        }},

        childItems: function(item) {{
            return Array.from(item.querySelectorAll(':scope > ul > li'));
        }},

        cascadeDown: function(item, checked) {{
            this.childItems(item).forEach((child) => {{
                const checkbox = this.itemCheckbox(child);
                // Disabled nodes and their subtrees keep their state
                if (!checkbox || checkbox.disabled) return;
                checkbox.checked = checked;
                checkbox.indeterminate = false;
                this.cascadeDown(child, checked);
            }});
        }},

        recompute: function(item) {{
            const checkbox = this.itemCheckbox(item);
            const children = this.childItems(item)
                .map((child) => this.itemCheckbox(child))
                .filter((child) => child && !child.disabled);
            if (!checkbox || children.length === 0) return;

            const checkedCount = children.filter((child) => child.checked).length;
            if (checkedCount === 0) {{
                checkbox.checked = false;
                checkbox.indeterminate = false;
            }} else if (checkedCount === children.length) {{
                checkbox.checked = true;
                checkbox.indeterminate = false;
            }} else {{
                checkbox.checked = false;
                checkbox.indeterminate = true;
            }}
        }},

        handleCascadeMode: function(checkbox) {{
            const item = checkbox.closest('li');
            if (!item) return;
            checkbox.indeterminate = false;
            this.cascadeDown(item, checkbox.checked);

            let parent = item.parentElement ? item.parentElement.closest('li') : null;
            while (parent && this.tree.contains(parent)) {{
                const parentCheckbox = this.itemCheckbox(parent);
                if (parentCheckbox && !parentCheckbox.disabled) this.recompute(parent);
                parent = parent.parentElement ? parent.parentElement.closest('li') : null;
            }}
        }},

        updateIndeterminateStates: function() {{
            if (this.mode !== 'cascade' || !this.tree) return;
            // Reverse document order visits children before their parents
            Array.from(this.tree.querySelectorAll('li')).reverse().forEach((item) => {{
                const checkbox = this.itemCheckbox(item);
                if (checkbox && !checkbox.disabled) this.recompute(item);
            }});
        }},

        emitChange: function(value) {{
            this.tree.dispatchEvent(new CustomEvent('checkbox-tree:change', {{
                bubbles: true,
                detail: {{ treeId: this.treeId, value: value, checkedValues: this.getCheckedValues() }}
            }}));
        }},

        getCheckedValues: function() {{
            if (!this.tree) return [];
            const checked = this.tree.querySelectorAll('input[type="checkbox"]:checked');
            return Array.from(checked).map((checkbox) => checkbox.value);
        }},

        setCheckedValues: function(values) {{
            if (!this.tree) return;
            this.tree.querySelectorAll('input[type="checkbox"]').forEach((checkbox) => {{
                if (checkbox.disabled) return;
                checkbox.checked = values.includes(checkbox.value);
                checkbox.indeterminate = false;
            }});
            this.updateIndeterminateStates();
            this.emitChange(null);
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


def generate_checkbox_tree_script(tree_id: str, mode: CascadeMode = CascadeMode.CASCADE,
                                  wrap: Optional[bool] = None) -> str:
    """Unguarded checkbox tree script for ``tree_id``."""
    return CheckboxTreeScriptGenerator(wrap).generate(tree_id, mode)
