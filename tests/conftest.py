"""pytest configuration and fixtures for html-formgen tests."""

import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from html_formgen.core import ManualScheduler, RenderContext
from html_formgen.forms import FormBuilder
from html_formgen.protocols import reset_form_config


@pytest.fixture(scope="session")
def qapp():
    """Create QApplication instance for tests."""
    QtWidgets = pytest.importorskip("PyQt6.QtWidgets")
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app
    # Don't quit - may cause issues with other tests


@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts from the default FormGenConfig."""
    reset_form_config()
    yield
    reset_form_config()


@pytest.fixture
def render_context():
    return RenderContext()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


def signup_builder(**data) -> FormBuilder:
    """account_type select driving company_size (business or enterprise only)."""
    builder = FormBuilder("signup")
    builder.add_select(
        "account_type",
        [("personal", "Personal"), ("business", "Business"), ("enterprise", "Enterprise")],
        label="Account type",
    )
    builder.add_number("company_size", label="Company size").depends_on("account_type", ["business", "enterprise"])
    if data:
        builder.set_data(data)
    return builder


def chain_builder(**data) -> FormBuilder:
    """a -> b -> c: b shows for a=x, c shows for b=y."""
    builder = FormBuilder("chain")
    builder.add_select("a", ["x", "z"])
    builder.add_select("b", ["y", "w"]).depends_on("a", "x")
    builder.add_text("c").depends_on("b", "y")
    if data:
        builder.set_data(data)
    return builder


def contacts_builder(**data) -> FormBuilder:
    """contacts repeater (1 to 3 rows of name + role) shown for account_type=business."""
    builder = FormBuilder("crm")
    builder.add_select("account_type", ["personal", "business"])
    with builder.repeater("contacts", "Contacts", min_rows=1, max_rows=3) as contacts:
        contacts.depends_on("account_type", "business")
        builder.add_text("contact_name", label="Name")
        builder.add_select("role", ["sales", "support"])
    builder.disable_dependency_animation()
    if data:
        builder.set_data(data)
    return builder


PERMISSIONS = [
    {"value": "parent", "label": "Parent", "children": [
        {"value": "child1", "label": "Child 1"},
        {"value": "child2", "label": "Child 2"},
    ]},
]


@pytest.fixture
def signup_form():
    return signup_builder().build()
