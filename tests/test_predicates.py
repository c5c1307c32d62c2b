"""
Tests for raw-line search predicates.
"""
from book.models import SearchQuery
from book.predicates import (
    AnyTagPredicate,
    TextPredicate,
    TruePredicate,
    predicate_for,
)

LINE = "gh,https://www.github.com,dev,code,"


class TestTextPredicate:

    def test_none_and_empty_match_everything(self):
        assert TextPredicate(None).matches(LINE)
        assert TextPredicate("").matches(LINE)

    def test_substring_anywhere_in_line(self):
        assert TextPredicate("github").matches(LINE)
        assert TextPredicate("gh,https").matches(LINE)
        assert not TextPredicate("gitlab").matches(LINE)


class TestAnyTagPredicate:

    def test_none_matches_everything(self):
        assert AnyTagPredicate(None).matches(LINE)

    def test_empty_list_matches_nothing(self):
        assert not AnyTagPredicate([]).matches(LINE)

    def test_any_tag_matches(self):
        assert AnyTagPredicate(["news", "code"]).matches(LINE)
        assert not AnyTagPredicate(["news", "tech"]).matches(LINE)

    def test_tag_matches_outside_tag_fields(self):
        """Tags are looked for in the whole raw line, including the target."""
        assert AnyTagPredicate(["www"]).matches(LINE)


class TestComposition:

    def test_and_or_not(self):
        dev = TextPredicate("dev")
        news = TextPredicate("news")
        assert (dev & TruePredicate()).matches(LINE)
        assert not (dev & news).matches(LINE)
        assert (dev | news).matches(LINE)
        assert (~news).matches(LINE)

    def test_predicate_for_query(self):
        predicate = predicate_for(SearchQuery(text="dev", tags=["code"]))
        assert predicate.matches(LINE)
        assert not predicate.matches("gl,https://gitlab.com,dev,ci,")

    def test_predicate_for_none(self):
        assert predicate_for(None).matches("anything")

    def test_callable(self):
        assert TextPredicate("dev")(LINE)
