"""
JavaScript generator for the per-form dependency controller.

The generated FormGen_<id> object runs the same algorithm as
html_formgen.reactive.controller.ReactiveController: group-wide identifier
union over reachable controllers, empty-select reset, depth-first
re-evaluation of nested groups, and per-element cancellable transition
timers.
"""

import json
import logging
from typing import Any, Optional

from html_formgen.animation.animation_config import AnimationConfig
from html_formgen.animation.animation_policy import REFLOW_DELAY_MS
from html_formgen.core.render_guard import RenderContext, ScriptKind, sanitize_identifier
from html_formgen.protocols.form_config import get_form_config

logger = logging.getLogger(__name__)


def js_literal(value: Any) -> str:
    """JSON literal safe to embed inside a <script> element."""
    return json.dumps(value).replace("</", "<\\/")


def wrap_script(code: str) -> str:
    return f'<script type="text/javascript">\n{code}\n</script>\n'


def dependency_namespace(form_id: str) -> str:
    return f"FormGen_{sanitize_identifier(form_id)}"


class DependencyScriptGenerator:
    """
    Generates the dependency controller script for one form.

    Example:
        generator = DependencyScriptGenerator(AnimationConfig(type="slide"))
        html = generator.emit(context, "signup")   # script, "" on repeat
    """

    def __init__(self, animation: Optional[AnimationConfig] = None, wrap: Optional[bool] = None):
        config = get_form_config()
        self.animation = animation if animation is not None else config.default_animation
        self.wrap = config.wrap_scripts if wrap is None else wrap

    def emit(self, context: RenderContext, form_id: str) -> str:
        """Script for ``form_id``, or "" if this render pass already emitted it."""
        return context.emit_once(ScriptKind.DEPENDENCY, form_id, lambda: self.generate(form_id))

    def generate(self, form_id: str) -> str:
        code = self.generate_code(form_id)
        logger.debug(f"[DependencyScriptGenerator] Generated controller for form '{form_id}'")
        return wrap_script(code) if self.wrap else code

    def generate_code(self, form_id: str) -> str:
        """
        Generate the controller code without a <script> wrapper.

        Returns:
            str: Self-invoking JavaScript that defines and initializes the namespace
        """
        ns = dependency_namespace(form_id)
        return f"""
(function() {{
    'use strict';

    /**
     * html-formgen dependency controller
     * Form ID: {form_id.replace('*/', '* /')}
     */
    const {ns} = {{
        formId: {js_literal(form_id)},
        animation: {js_literal(self.animation.to_dict())},
        reflowDelay: {REFLOW_DELAY_MS},
        form: null,
        visible: new Map(),
        timers: new Map(),
        bound: new WeakSet(),
        cascadeStack: [],
        initializing: false,

        init: function() {{
            if (this.form) return;
            const form = document.getElementById(this.formId);
            if (!form) {{
                console.warn('FormGen: Form not found: #' + this.formId);
                return;
            }}
            this.form = form;

            form.querySelectorAll('[data-dependends]').forEach((dependent) => {{
                this.visible.set(dependent, dependent.style.display !== 'none');
            }});
            form.querySelectorAll('[data-dependency="true"]').forEach((controller) => this.bindController(controller));
            form.addEventListener('repeater:add', (e) => this.bindWithin(e.detail.row));

            this.initializing = true;
            try {{
                this.detectInitialState();
            }} finally {{
                this.initializing = false;
            }}
        }},

        bindController: function(controller) {{
            if (this.bound.has(controller)) return;
            this.bound.add(controller);
            controller.addEventListener('change', (e) => this.handleDependency(e.currentTarget));
        }},

        bindWithin: function(container) {{
            if (!this.form || !container) return;
            container.querySelectorAll('[data-dependends]').forEach((dependent) => {{
                if (!this.visible.has(dependent)) this.visible.set(dependent, dependent.style.display !== 'none');
            }});
            container.querySelectorAll('[data-dependency="true"]').forEach((controller) => this.bindController(controller));
            if (!this.isReachable(container)) this.toggleInputs(container, true);
            this.reevaluateWithin(container);
        }},

        detectInitialState: function() {{
            const seen = new Set();
            this.form.querySelectorAll('[data-dependency="true"]').forEach((controller) => {{
                const group = controller.getAttribute('data-dependency-group');
                if (group && !seen.has(group)) {{
                    seen.add(group);
                    this.runGroup(group);
                }}
            }});
        }},

        handleDependency: function(element) {{
            const group = element.getAttribute('data-dependency-group');
            const field = element.getAttribute('data-dependency-field');
            if (!group || !field) {{
                console.warn('FormGen: Controller lacks dependency attributes', element);
                return;
            }}
            this.runGroup(group);
        }},

        runGroup: function(group) {{
            if (this.cascadeStack.indexOf(group) !== -1) return;
            this.cascadeStack.push(group);
            try {{
                this.evaluateGroup(group);
            }} finally {{
                this.cascadeStack.pop();
            }}
        }},

        evaluateGroup: function(group) {{
            const dependents = this.form.querySelectorAll('[data-dependend-group="' + CSS.escape(group) + '"]');
            if (dependents.length === 0) {{
                console.warn('FormGen: No dependents found for group', group);
                return;
            }}
            const state = this.groupState(group);

            dependents.forEach((dependent) => {{
                const triggers = (dependent.getAttribute('data-dependend') || '').split(' ').filter(Boolean);
                if (triggers.length === 0) return;

                const shouldShow = !state.reset
                    && state.identifiers.size > 0
                    && (triggers.indexOf('all') !== -1 || triggers.some((t) => state.identifiers.has(t)))
                    && this.enclosingVisible(dependent);

                if (shouldShow) {{
                    this.showElement(dependent);
                }} else {{
                    this.hideElement(dependent);
                }}
                this.reevaluateWithin(dependent);
            }});
        }},

        groupState: function(group) {{
            const identifiers = new Set();
            let reset = false;
            this.form.querySelectorAll('[data-dependency-group="' + CSS.escape(group) + '"]').forEach((controller) => {{
                if (controller.getAttribute('data-dependency') !== 'true' || !this.isReachable(controller)) return;
                const field = controller.getAttribute('data-dependency-field') || '';

                if (controller.tagName === 'SELECT') {{
                    if (controller.multiple) {{
                        Array.from(controller.selectedOptions).forEach((option) => {{
                            if (option.value) identifiers.add(field + '-' + option.value);
                        }});
                    }} else if (controller.value === '' || controller.value === null) {{
                        reset = true;
                    }} else {{
                        identifiers.add(field + '-' + controller.value);
                    }}
                }} else if (controller.type === 'checkbox' || controller.type === 'radio') {{
                    if (controller.checked) {{
                        identifiers.add(controller.value ? field + '-' + controller.value : field);
                    }}
                }} else if (controller.type === 'hidden') {{
                    identifiers.add(controller.value ? field + '-' + controller.value : field);
                }} else if (controller.value) {{
                    identifiers.add(field + '-' + controller.value);
                }}
            }});
            return {{ identifiers: identifiers, reset: reset }};
        }},

        reevaluateWithin: function(container) {{
            const groups = [];
            container.querySelectorAll('[data-dependency="true"], [data-dependends]').forEach((element) => {{
                const group = element.getAttribute('data-dependency') === 'true'
                    ? element.getAttribute('data-dependency-group')
                    : element.getAttribute('data-dependend-group');
                if (group && groups.indexOf(group) === -1) groups.push(group);
            }});
            groups.forEach((group) => this.runGroup(group));
        }},

        isVisible: function(element) {{
            return this.visible.has(element) ? this.visible.get(element) : element.style.display !== 'none';
        }},

        isReachable: function(element) {{
            for (let node = element; node && node !== this.form; node = node.parentElement) {{
                if (node.hasAttribute('data-dependends') && !this.isVisible(node)) return false;
            }}
            return true;
        }},

        enclosingVisible: function(dependent) {{
            return dependent.parentElement ? this.isReachable(dependent.parentElement) : true;
        }},

        schedule: function(element, delay, callback) {{
            const id = setTimeout(() => {{
                const pending = this.timers.get(element) || [];
                this.timers.set(element, pending.filter((t) => t !== id));
                callback();
            }}, delay);
            const pending = this.timers.get(element) || [];
            pending.push(id);
            this.timers.set(element, pending);
        }},

        cancelTimers: function(element) {{
            (this.timers.get(element) || []).forEach((id) => clearTimeout(id));
            this.timers.delete(element);
        }},

        isInstant: function() {{
            return this.initializing || !this.animation.enabled || this.animation.type === 'none';
        }},

        transition: function(properties) {{
            const timing = this.animation.duration + 'ms ' + this.animation.easing;
            return properties.map((property) => property + ' ' + timing).join(', ');
        }},

        showElement: function(element) {{
            if (this.visible.get(element) === true) return;
            this.visible.set(element, true);
            this.cancelTimers(element);

            // Enable form inputs first
            this.toggleInputs(element, false);

            if (this.isInstant()) {{
                element.style.display = '';
                element.style.opacity = '1';
                this.finish(element, true);
                return;
            }}

            const duration = this.animation.duration;
            if (this.animation.type === 'fade') {{
                element.style.display = '';
                element.style.opacity = '0';
                element.style.transition = this.transition(['opacity']);
                this.schedule(element, this.reflowDelay, () => {{
                    element.style.opacity = '1';
                    this.schedule(element, duration, () => this.finish(element, true));
                }});
            }} else {{
                element.style.display = '';
                element.style.maxHeight = '0';
                element.style.overflow = 'hidden';
                element.style.opacity = '0';
                element.style.transition = this.transition(['max-height', 'opacity']);
                this.schedule(element, this.reflowDelay, () => {{
                    element.style.maxHeight = element.scrollHeight + 'px';
                    element.style.opacity = '1';
                    this.schedule(element, duration, () => {{
                        element.style.maxHeight = '';
                        element.style.overflow = '';
                        this.finish(element, true);
                    }});
                }});
            }}
        }},

        hideElement: function(element) {{
            if (this.visible.get(element) === false) return;
            this.visible.set(element, false);
            this.cancelTimers(element);

            if (this.isInstant()) {{
                element.style.display = 'none';
                this.toggleInputs(element, true);
                this.finish(element, false);
                return;
            }}

            const duration = this.animation.duration;
            if (this.animation.type === 'fade') {{
                element.style.opacity = '0';
                element.style.transition = this.transition(['opacity']);
                this.schedule(element, duration, () => {{
                    element.style.display = 'none';
                    this.toggleInputs(element, true);
                    this.finish(element, false);
                }});
            }} else {{
                element.style.maxHeight = element.scrollHeight + 'px';
                element.style.overflow = 'hidden';
                element.style.transition = this.transition(['max-height', 'opacity']);
                this.schedule(element, this.reflowDelay, () => {{
                    element.style.maxHeight = '0';
                    element.style.opacity = '0';
                    this.schedule(element, duration, () => {{
                        element.style.display = 'none';
                        element.style.maxHeight = '';
                        element.style.overflow = '';
                        this.toggleInputs(element, true);
                        this.finish(element, false);
                    }});
                }});
            }}
        }},

        toggleInputs: function(element, disable) {{
            element.querySelectorAll('input, select, textarea').forEach((input) => {{
                if (input.closest('[data-repeater-template]')) return;
                input.disabled = disable;
                if (disable) {{
                    if (input.type === 'checkbox' || input.type === 'radio') {{
                        input.checked = false;
                    }} else {{
                        input.value = '';
                    }}
                }}
            }});
        }},

        finish: function(element, visible) {{
            element.dispatchEvent(new CustomEvent(visible ? 'formgen:shown' : 'formgen:hidden', {{
                bubbles: true,
                detail: {{ formId: this.formId, field: element.getAttribute('data-field') }}
            }}));
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


def generate_dependency_script(form_id: str, animation: Optional[AnimationConfig] = None,
                               wrap: Optional[bool] = None) -> str:
    """Unguarded dependency controller script for ``form_id``."""
    return DependencyScriptGenerator(animation, wrap).generate(form_id)
