import pytest

from domlocator.errors import UnknownAriaAttributeError
from domlocator.selectors.aria import parse_aria_selector


def test_bare_text_is_the_name():
    opts = parse_aria_selector("Submit")
    assert opts.name == "Submit"
    assert opts.role is None


def test_role_attribute():
    opts = parse_aria_selector('Submit[role="button"]')
    assert opts.name == "Submit"
    assert opts.role == "button"


def test_explicit_name_wins_over_bare_text():
    opts = parse_aria_selector("ignored[name='Save'][role='button']")
    assert opts.name == "Save"
    assert opts.role == "button"


def test_role_only():
    opts = parse_aria_selector("[role='link']")
    assert opts.name is None
    assert opts.role == "link"


def test_unknown_attribute_raises():
    with pytest.raises(UnknownAriaAttributeError) as ei:
        parse_aria_selector("x[level='2']")
    assert ei.value.attribute == "level"
