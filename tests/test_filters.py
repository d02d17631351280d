"""
Copyright 2024 Job Application Helper Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Tests for list filters.

This module tests:
- Multi-select normalisation
- Candidate filter state, presets and RPC parameters
- The filters modal staging buffer and the experience slider
- Client-side job filtering, sorting and salary formatting
"""

import pytest

from hiring_console.core.errors import ValidationError
from hiring_console.core.filters import (
    ALL,
    CandidateFilters,
    ExperienceRangeSelector,
    FilterStaging,
    JobFilters,
    apply_candidate_filter_change,
    filter_jobs,
    format_salary,
    parse_experience_value,
    prepare_array_filter,
    sort_jobs,
)
from hiring_console.core.models import Job


class TestPrepareArrayFilter:
    """Test multi-select normalisation."""

    def test_empty_values_mean_no_filter(self):
        assert prepare_array_filter(None) is None
        assert prepare_array_filter("") is None
        assert prepare_array_filter([]) is None

    def test_all_sentinel_is_dropped(self):
        assert prepare_array_filter(ALL) is None
        assert prepare_array_filter([ALL, "Acme"]) == ["Acme"]

    def test_single_string_becomes_list(self):
        assert prepare_array_filter("Acme") == ["Acme"]

    def test_blank_entries_are_dropped(self):
        assert prepare_array_filter(["", "  ", "Engineer"]) == ["Engineer"]


class TestCandidateFilters:
    """Test candidate filter state."""

    def test_defaults_are_empty(self):
        filters = CandidateFilters()

        assert filters.is_empty()
        assert filters.sort_preset == "date_desc"
        assert filters.experience_preset == ""

    def test_rpc_params_apply_defaults(self):
        params = CandidateFilters().to_rpc_params()

        assert params["p_sort_by"] == "applied_date"
        assert params["p_sort_order"] == "desc"
        assert params["p_application_status"] is None
        assert params["p_min_experience"] is None

    def test_search_term_feeds_name_filter(self):
        filters = CandidateFilters(candidate_name="Ann", search_term="Bob")

        assert filters.to_rpc_params()["p_name_filter"] == "Bob"
        assert CandidateFilters(candidate_name="Ann").to_rpc_params()["p_name_filter"] == "Ann"

    def test_zero_experience_means_unbounded(self):
        params = CandidateFilters(min_experience=0, max_experience=5).to_rpc_params()

        assert params["p_min_experience"] is None
        assert params["p_max_experience"] == 5

    def test_string_multi_select_is_wrapped(self):
        filters = CandidateFilters(status="pending")

        assert filters.status == ["pending"]

    def test_unknown_sort_field_rejected(self):
        with pytest.raises(ValidationError):
            CandidateFilters(sort_by="salary")

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValidationError, match="Unknown candidate filters"):
            CandidateFilters.from_dict({"colour": "blue"})

    def test_from_dict_ignores_unset_values(self):
        filters = CandidateFilters.from_dict({"candidate_name": "", "job_id": None, "status": ["accepted"]})

        assert filters.to_dict() == {"status": ["accepted"]}


class TestFilterChanges:
    """Test single toolbar changes."""

    def test_sort_preset(self):
        filters = apply_candidate_filter_change(CandidateFilters(), "sortBy", "name_asc")

        assert (filters.sort_by, filters.sort_order) == ("name", "asc")
        assert filters.sort_preset == "name_asc"

    def test_unknown_sort_preset_is_ignored(self):
        original = CandidateFilters()

        assert apply_candidate_filter_change(original, "sortBy", "bogus") is original

    def test_experience_preset(self):
        filters = apply_candidate_filter_change(CandidateFilters(), "experience", "9+")

        assert filters.min_experience == 9
        assert filters.max_experience is None
        assert filters.experience_preset == "9+"

    def test_slider_range_sets_both_bounds(self):
        filters = apply_candidate_filter_change(CandidateFilters(), "experience", "4-7")

        assert (filters.min_experience, filters.max_experience) == (4, 7)

    def test_slider_open_range(self):
        filters = apply_candidate_filter_change(CandidateFilters(), "experience", "12+")

        assert (filters.min_experience, filters.max_experience) == (12, None)

    def test_parse_experience_value(self):
        assert parse_experience_value("3-5") == (3, 5)
        assert parse_experience_value(" 4 - 7 ") == (4, 7)
        assert parse_experience_value("2+") == (2, None)
        assert parse_experience_value("7-3") == (None, None)
        assert parse_experience_value("lots") == (None, None)
        assert parse_experience_value(None) == (None, None)

    def test_clearing_experience(self):
        filters = CandidateFilters(min_experience=3, max_experience=5)

        cleared = apply_candidate_filter_change(filters, "experience", "")

        assert cleared.min_experience is None
        assert cleared.max_experience is None

    def test_field_change_and_clear(self):
        filters = apply_candidate_filter_change(CandidateFilters(), "company_name", "Acme")
        assert filters.company_name == ["Acme"]

        filters = apply_candidate_filter_change(filters, "company_name", ALL)
        assert filters.company_name == []

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            apply_candidate_filter_change(CandidateFilters(), "favourite", "x")


class TestFilterStaging:
    """Test the filters modal buffer."""

    def test_apply_returns_staged_copy(self):
        applied = CandidateFilters(job_title=["Engineer"])
        staging = FilterStaging()

        staging.begin(applied)
        staging.stage(company_name=["Acme"])
        staged = staging.apply()

        assert staged.company_name == ["Acme"]
        assert staged.job_title == ["Engineer"]
        assert applied.company_name == []
        assert not staging.is_open

    def test_cancel_discards_edits(self):
        staging = FilterStaging()
        staging.begin(CandidateFilters())
        staging.stage(candidate_name="Zed")

        staging.cancel()

        assert not staging.is_open
        with pytest.raises(ValidationError):
            staging.apply()


class TestExperienceRangeSelector:
    """Test the experience slider."""

    def test_full_range_label(self):
        selector = ExperienceRangeSelector()

        assert selector.label == "Years of Exp."
        assert selector.apply() == ""

    def test_open_ended_range(self):
        selector = ExperienceRangeSelector()
        selector.set_min(4)

        assert selector.temp_label == "4+ years"
        assert selector.apply() == "4+"
        assert selector.label == "4+ years"

    def test_bounded_range_and_single_year(self):
        selector = ExperienceRangeSelector()
        selector.set_max(6)
        selector.set_min(2)
        assert selector.apply() == "2-6"

        selector.set_min(1)
        selector.set_max(1)
        assert selector.temp_label == "1 year"

    def test_handles_cannot_cross(self):
        selector = ExperienceRangeSelector()
        selector.set_max(3)
        selector.set_min(10)

        assert selector.temp == (3, 3)

    def test_cancel_reverts_temp(self):
        selector = ExperienceRangeSelector()
        selector.set_min(5)

        selector.cancel()

        assert selector.temp == (0, 15)

    def test_applied_value_becomes_filter_bounds(self):
        selector = ExperienceRangeSelector()
        selector.set_min(4)
        selector.set_max(7)

        filters = apply_candidate_filter_change(CandidateFilters(), "experience", selector.apply())

        assert (filters.min_experience, filters.max_experience) == (4, 7)


def make_job(**overrides):
    data = {
        "id": "job-1",
        "title": "Backend Engineer",
        "company_name": "Acme",
        "location": "Berlin",
        "job_type": "full_time",
        "salary_min": 50000,
        "salary_max": 70000,
        "status": "active",
        "created_at": "2024-01-01",
    }
    data.update(overrides)
    return Job.from_raw(data)


class TestJobFilters:
    """Test job filters and client-side filtering."""

    def test_defaults_send_no_ranges(self):
        params = JobFilters().to_rpc_params()

        assert params["p_salary_min"] is None
        assert params["p_experience_max"] is None
        assert params["p_status_filter"] is None

    def test_active_salary_range_is_sent(self):
        params = JobFilters(salary_min=40000).to_rpc_params()

        assert params["p_salary_min"] == 40000
        assert params["p_salary_max"] == 5_000_000

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValidationError):
            JobFilters.from_dict({"remote": True})

    def test_search_matches_title_and_company(self):
        jobs = [make_job(), make_job(id="job-2", title="Designer", company_name="Globex")]

        assert [j.id for j in filter_jobs(jobs, JobFilters(), "acme")] == ["job-1"]
        assert [j.id for j in filter_jobs(jobs, JobFilters(), "design")] == ["job-2"]

    def test_status_and_location_filters(self):
        jobs = [make_job(), make_job(id="job-2", status="closed", location="Paris")]

        assert [j.id for j in filter_jobs(jobs, JobFilters(status=["closed"]))] == ["job-2"]
        assert [j.id for j in filter_jobs(jobs, JobFilters(location=["Berlin"]))] == ["job-1"]

    def test_salary_overlap(self):
        jobs = [make_job(), make_job(id="job-2", salary_min=90000, salary_max=120000)]

        result = filter_jobs(jobs, JobFilters(salary_min=80000, salary_max=100000))

        assert [j.id for j in result] == ["job-2"]

    def test_sorting(self):
        jobs = [
            make_job(id="a", title="Zoologist", created_at="2024-01-01"),
            make_job(id="b", title="Accountant", created_at="2024-03-01"),
        ]

        assert [j.id for j in sort_jobs(jobs, "az")] == ["b", "a"]
        assert [j.id for j in sort_jobs(jobs, "za")] == ["a", "b"]
        assert [j.id for j in sort_jobs(jobs, "recent")] == ["b", "a"]
        with pytest.raises(ValidationError):
            sort_jobs(jobs, "salary")

    def test_format_salary(self):
        assert format_salary(None, None) == "Not specified"
        assert format_salary(50000, 50000) == "50,000"
        assert format_salary(50000, 70000) == "50,000 - 70,000"
