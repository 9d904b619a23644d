"""Property-based tests for author parsing."""

from hypothesis import given
from hypothesis import strategies as st

from storesync.backends import add_angle_brackets_to_email, unique_non_empty

names = st.text(
    alphabet=st.characters(categories=("Lu", "Ll")), min_size=1, max_size=12
)
emails = st.builds(
    lambda user, host: f"{user}@{host}.com",
    st.from_regex(r"[a-z0-9.]{1,10}", fullmatch=True),
    st.from_regex(r"[a-z]{1,10}", fullmatch=True),
)
authors = st.builds(lambda n, e: f"{n} {e}", names, emails)


@given(name=names, email=emails)
def test_brackets_wrap_trailing_email(name: str, email: str) -> None:
    """
    Property: the email word ends up wrapped exactly once, the name untouched.
    """
    assert add_angle_brackets_to_email(f"{name} {email}") == f"{name} <{email}>"


@given(value=authors)
def test_brackets_idempotent(value: str) -> None:
    """
    Property: bracketing an already bracketed author changes nothing.
    """
    once = add_angle_brackets_to_email(value)
    assert add_angle_brackets_to_email(once) == once


@given(value=names)
def test_brackets_ignore_strings_without_email(value: str) -> None:
    """
    Property: strings without '@' pass through unchanged.
    """
    assert add_angle_brackets_to_email(value) == value


@given(lines=st.lists(st.one_of(authors, st.just(""), st.just("   "))))
def test_unique_non_empty_is_order_insensitive(lines: list[str]) -> None:
    """
    Property: the contributor set depends only on which authors appear, not on
    their order or repetition, and never contains blanks.
    """
    result = unique_non_empty(lines)

    assert result == unique_non_empty(list(reversed(lines)))
    assert result == unique_non_empty(lines + lines)
    assert len(result) == len(set(result))
    assert all(r.strip() for r in result)
    assert set(result) == {add_angle_brackets_to_email(a) for a in lines if a.strip()}
