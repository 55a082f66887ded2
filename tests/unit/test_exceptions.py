"""Unit tests for core/exceptions.py."""

import pytest

from core.exceptions import (
    AuxstreamError,
    CacheError,
    ConfigurationError,
    NoScraperError,
    ProviderError,
    QueryValidationError,
    ScraperError,
    ServiceInitializationError,
    SourceNotConfiguredError,
    UnsupportedSourceError,
    UnsupportedURLError,
)


class TestAuxstreamError:
    """Tests for the base exception class."""

    def test_message_attribute(self):
        err = AuxstreamError("something went wrong")
        assert err.message == "something went wrong"

    def test_str_output(self):
        err = AuxstreamError("something went wrong")
        assert str(err) == "something went wrong"

    def test_details_default_empty(self):
        err = AuxstreamError("msg")
        assert err.details == {}

    def test_details_provided(self):
        err = AuxstreamError("msg", details={"key": "val"})
        assert err.details == {"key": "val"}

    def test_inherits_from_exception(self):
        err = AuxstreamError("msg")
        assert isinstance(err, Exception)


SUBCLASSES = [
    QueryValidationError,
    UnsupportedSourceError,
    SourceNotConfiguredError,
    ProviderError,
    CacheError,
    ScraperError,
    UnsupportedURLError,
    NoScraperError,
    ServiceInitializationError,
    ConfigurationError,
]


@pytest.mark.parametrize("cls", SUBCLASSES, ids=lambda c: c.__name__)
class TestExceptionSubclasses:
    """All subclasses inherit from AuxstreamError and carry message/details."""

    def test_inherits_from_base(self, cls):
        err = cls("test")
        assert isinstance(err, AuxstreamError)

    def test_message_and_details(self, cls):
        err = cls("detail msg", details={"a": 1})
        assert err.message == "detail msg"
        assert err.details == {"a": 1}
        assert str(err) == "detail msg"


@pytest.mark.parametrize("cls", [UnsupportedURLError, NoScraperError], ids=lambda c: c.__name__)
def test_url_errors_are_scraper_errors(cls):
    assert issubclass(cls, ScraperError)
