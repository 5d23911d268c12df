"""
Unit tests for upload wizard validation.
"""

from types import SimpleNamespace

import pytest

from sirened.catalog.upload_wizard import (
    WIZARD_STEPS,
    can_proceed,
    can_skip_to,
    step_errors,
    submission_errors,
    validate_submission,
)
from sirened.exceptions import ValidationError


@pytest.fixture
def valid_form() -> dict:
    return {
        "title": "The Hollow Tide",
        "description": "A lighthouse keeper hears the sea singing back.",
        "formats": ["softback"],
        "published_date": "2024-10-01",
        "genres": [1],
        "referral_links": [{"retailer": "Amazon", "url": "https://amazon.com/dp/1"}],
    }


class TestWizardSteps:
    def test_step_titles_in_order(self):
        assert [s.title for s in WIZARD_STEPS] == [
            "Basic Information",
            "Images",
            "Awards",
            "Formats",
            "Publication",
            "Genres",
            "Book Details",
            "Referral Links",
            "Preview",
        ]

    def test_valid_form_passes_every_step(self, valid_form):
        assert all(can_proceed(i, valid_form) for i in range(len(WIZARD_STEPS)))

    def test_unknown_step(self, valid_form):
        with pytest.raises(ValidationError):
            step_errors(len(WIZARD_STEPS), valid_form)


class TestStepRules:
    """Tests for the individual step validators."""

    def test_basic_information_needs_title_and_description(self):
        assert step_errors(0, {"title": "  ", "description": ""}) == [
            "Title is required",
            "Description is required",
        ]

    def test_images_always_pass(self):
        assert step_errors(1, {}) == []

    def test_awards_required_only_when_flagged(self):
        assert step_errors(2, {"has_awards": False}) == []
        assert step_errors(2, {"has_awards": True, "awards": [" "]}) != []
        assert step_errors(2, {"has_awards": True, "awards": ["Hugo"]}) == []

    def test_formats(self):
        assert step_errors(3, {"formats": []}) == ["At least one format is required"]
        assert step_errors(3, {"formats": ["scroll"]}) == ["Unknown format: scroll"]
        assert step_errors(3, {"formats": ["audiobook", "hardback"]}) == []

    def test_publication_date(self):
        assert step_errors(4, {}) == ["Published date is required"]

    def test_genres(self):
        assert step_errors(5, {"genres": []}) == ["At least one genre is required"]

    def test_referral_links_need_http(self):
        form = {"referral_links": [{"url": ""}, {"url": "amazon.com/dp/1"}, {"url": "https://ok.com"}]}
        assert step_errors(7, form) == [
            "Referral link 1 needs a URL",
            "Referral link 2 must start with http:// or https://",
        ]

    def test_objects_are_accepted(self, valid_form):
        links = [SimpleNamespace(url=link["url"]) for link in valid_form["referral_links"]]
        form = SimpleNamespace(**dict(valid_form, referral_links=links))
        assert submission_errors(form) == {}

    @pytest.mark.parametrize("step,form,message", [
        (2, {"has_awards": True, "awards": "Hugo"}, "Awards must be a list"),
        (3, {"formats": 5}, "Formats must be a list"),
        (3, {"formats": "softback"}, "Formats must be a list"),
        (5, {"genres": 7}, "Genres must be a list"),
        (6, {"page_count": "three hundred"}, "Page count must be a number"),
        (6, {"page_count": True}, "Page count must be a number"),
        (7, {"referral_links": 3}, "Referral links must be a list"),
    ])
    def test_malformed_values_are_step_errors(self, step, form, message):
        assert step_errors(step, form) == [message]

    def test_numeric_page_count_strings(self):
        assert step_errors(6, {"page_count": "300"}) == []
        assert step_errors(6, {"page_count": "0"}) == ["Page count must be positive"]


class TestNavigation:
    def test_going_back_always_allowed(self):
        assert can_skip_to(0, 5, {})

    def test_forward_needs_earlier_steps(self, valid_form):
        partial = {"title": "x", "description": "y"}

        assert can_skip_to(3, 0, partial)
        assert not can_skip_to(5, 0, partial)
        assert can_skip_to(8, 0, valid_form)


class TestValidateSubmission:
    def test_valid_submission(self, valid_form):
        validate_submission(valid_form)

    def test_errors_keyed_by_step(self, valid_form):
        form = dict(valid_form, formats=[], genres=[])

        with pytest.raises(ValidationError) as exc_info:
            validate_submission(form)

        assert set(exc_info.value.detail) == {"Formats", "Genres"}
