import pytest

from student_records.services import query
from student_records.services.query import (
    QueryParams, SortKey, SortOrder, compute_stats, filter_records,
    paginate, query_students, sort_records
)


@pytest.fixture
def roster(make_record):
    return [
        make_record(roll_number="CS-01", name="Zara Khan", email="zara@uni.edu", course="Computer Science"),
        make_record(roll_number="ME-07", name="arjun Rao", email="arjun@uni.edu", course="Mechanical"),
        make_record(roll_number="CS-02", name="Bela Ng", email="bela@mail.com", course="Computer Science"),
        make_record(roll_number="PH-11", name="Chen Li", email="chen@uni.edu", course="Physics"),
    ]


class TestFilter:
    """Free-text search over name, rollNumber, email, course, then exact course."""

    def test_search_is_case_insensitive_substring(self, roster):
        assert [r.name for r in filter_records(roster, q="ARJUN")] == ["arjun Rao"]

    def test_search_matches_any_field(self, roster):
        assert {r.roll_number for r in filter_records(roster, q="cs-")} == {"CS-01", "CS-02"}
        assert [r.name for r in filter_records(roster, q="mail.com")] == ["Bela Ng"]
        assert [r.name for r in filter_records(roster, q="physics")] == ["Chen Li"]

    def test_search_ignores_other_fields(self, make_record):
        records = [make_record(name="A", address="Hidden Street")]
        assert filter_records(records, q="hidden") == []

    def test_course_filter_is_exact(self, roster):
        assert len(filter_records(roster, course="Computer Science")) == 2
        assert filter_records(roster, course="computer science") == []
        assert filter_records(roster, course="Computer") == []

    def test_filters_compose(self, roster):
        result = filter_records(roster, q="uni.edu", course="Computer Science")
        assert [r.name for r in result] == ["Zara Khan"]

    def test_no_filters_keeps_everything(self, roster):
        assert filter_records(roster) == roster


class TestSort:
    """Typed comparators and stability."""

    def test_text_sort_ignores_case(self, roster):
        result = sort_records(roster, SortKey.NAME, SortOrder.ASC)
        assert [r.name for r in result] == ["arjun Rao", "Bela Ng", "Chen Li", "Zara Khan"]

    def test_descending(self, roster):
        result = sort_records(roster, SortKey.NAME, SortOrder.DESC)
        assert [r.name for r in result] == ["Zara Khan", "Chen Li", "Bela Ng", "arjun Rao"]

    def test_age_sorts_numerically(self, make_record):
        records = [make_record(name=n, age=a) for n, a in [("a", "9"), ("b", "100"), ("c", ""), ("d", "25")]]
        result = sort_records(records, SortKey.AGE, SortOrder.ASC)
        assert [r.name for r in result] == ["c", "a", "d", "b"]

    def test_admission_date_sorts_as_time_with_invalid_first(self, make_record):
        records = [
            make_record(name="late", admission_date="2024-09-01T10:00:00.000Z"),
            make_record(name="bad", admission_date="not a date"),
            make_record(name="early", admission_date="2021-01-15"),
            make_record(name="missing", admission_date=""),
            make_record(name="offset", admission_date="2024-09-01T08:00:00+05:30"),
        ]
        result = sort_records(records, SortKey.ADMISSION_DATE, SortOrder.ASC)
        assert [r.name for r in result] == ["bad", "missing", "early", "offset", "late"]

    @pytest.mark.parametrize("order", [SortOrder.ASC, SortOrder.DESC])
    def test_sort_is_stable(self, make_record, order):
        records = [make_record(name=f"n{i}", course=c)
                   for i, c in enumerate(["B", "A", "B", "A", "B", "a"])]
        result = sort_records(records, SortKey.COURSE, order)

        group_a = [r.name for r in result if r.course.lower() == "a"]
        group_b = [r.name for r in result if r.course == "B"]
        assert group_a == ["n1", "n3", "n5"]
        assert group_b == ["n0", "n2", "n4"]


class TestPaginate:
    """Page clamping and totalPages computation."""

    def test_ten_records_limit_four(self, make_record):
        records = [make_record(name=f"s{i}") for i in range(1, 11)]
        result = paginate(records, page=5, limit=4)

        assert result.total == 10
        assert result.total_pages == 3
        assert result.page == 3
        assert [r.name for r in result.data] == ["s9", "s10"]

    @pytest.mark.parametrize("total,limit", [(0, 1), (1, 1), (7, 3), (12, 4), (13, 5), (5, 50)])
    def test_pages_cover_every_record_once(self, make_record, total, limit):
        records = [make_record(name=str(i)) for i in range(total)]
        first = paginate(records, page=1, limit=limit)

        seen = []
        for page in range(1, first.total_pages + 1):
            seen.extend(paginate(records, page=page, limit=limit).data)
        assert seen == records

        beyond = paginate(records, page=first.total_pages + 3, limit=limit)
        last = paginate(records, page=first.total_pages, limit=limit)
        assert beyond.data == last.data
        assert beyond.page == last.page

    def test_empty_collection_has_one_page(self):
        result = paginate([], page=4, limit=10)
        assert (result.total, result.total_pages, result.page, result.data) == (0, 1, 1, [])

    def test_page_and_limit_clamped_from_below(self, make_record):
        records = [make_record(name=str(i)) for i in range(3)]
        result = paginate(records, page=-2, limit=0)
        assert result.page == 1
        assert result.limit == 1
        assert result.total_pages == 3


class TestQueryParams:
    """Lenient parsing of raw query-string values."""

    def test_defaults(self):
        params = QueryParams.parse()
        assert params.sort == SortKey.NAME
        assert params.order == SortOrder.ASC
        assert params.page == 1
        assert params.limit == 8

    def test_garbage_numbers_fall_back(self):
        params = QueryParams.parse(page="abc", limit="")
        assert params.page == 1
        assert params.limit == 8

    def test_leading_integer_is_used(self):
        params = QueryParams.parse(page="2x", limit=" 15 ")
        assert params.page == 2
        assert params.limit == 15

    def test_unknown_sort_falls_back_to_name(self):
        assert QueryParams.parse(sort="password").sort == SortKey.NAME

    def test_order_and_trimming(self):
        params = QueryParams.parse(q="  ada ", course=" Physics ", order="DESC", sort="admissionDate")
        assert params.q == "ada"
        assert params.course == "Physics"
        assert params.order == SortOrder.DESC
        assert params.sort == SortKey.ADMISSION_DATE


class TestQueryStudents:

    def test_full_pipeline(self, roster):
        params = QueryParams.parse(q="uni.edu", sort="name", order="desc", page="1", limit="2")
        result = query_students(roster, params).to_dict()

        assert result["total"] == 3
        assert result["totalPages"] == 2
        assert [r["name"] for r in result["data"]] == ["Zara Khan", "Chen Li"]


class TestComputeStats:

    def test_average_age_ignores_blank_and_non_positive(self, make_record):
        records = [make_record(age=a) for a in [20, "", -1, 30]]
        assert compute_stats(records)["averageAge"] == 25

    def test_average_age_rounds_half_up(self, make_record):
        records = [make_record(age=a) for a in ["20", "21"]]
        assert compute_stats(records)["averageAge"] == 21

    def test_average_age_unavailable(self, make_record):
        records = [make_record(age=a) for a in ["", "abc", "0"]]
        assert compute_stats(records)["averageAge"] is None

    def test_active_count_is_exact_match(self, make_record):
        records = [make_record(status=s) for s in ["Active", "active", "Inactive", "Active"]]
        assert compute_stats(records)["activeCount"] == 2

    def test_counts_by_course_sorted_with_other_bucket(self, make_record):
        records = [make_record(course=c) for c in ["Physics", "", "Biology", "Physics"]]
        stats = compute_stats(records)

        assert stats["total"] == 4
        assert list(stats["countsByCourse"].items()) == [("Biology", 1), ("Other", 1), ("Physics", 2)]

    def test_empty(self):
        assert compute_stats([]) == {"total": 0, "averageAge": None, "activeCount": 0, "countsByCourse": {}}


class TestDefaultSortSetting:

    def test_invalid_default_sort_falls_back_to_name(self, monkeypatch):
        monkeypatch.setattr(query, "DEFAULT_SORT", "password")
        assert query._default_sort_key() == SortKey.NAME

    def test_valid_default_sort_is_used(self, monkeypatch):
        monkeypatch.setattr(query, "DEFAULT_SORT", "admissionDate")
        assert query._default_sort_key() == SortKey.ADMISSION_DATE
