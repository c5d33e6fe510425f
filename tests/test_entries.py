import pytest

from survey_report.report.entries import (
    SUPPRESSED_MESSAGE,
    TOTAL_CODE,
    Distribution,
    QuestionReport,
    RawList,
    Report,
    Suppressed,
    UnknownType,
)


class TestDistribution:
    """Ordered entries with unique codes and an optional total."""

    def test_with_vocabulary_keeps_order_and_appends_total(self):
        d = Distribution.with_vocabulary([("B", "Blue"), ("A", "Red")])
        assert d.codes() == ["B", "A", TOTAL_CODE]
        assert d.total.percentage == 100.0

    def test_duplicate_code_rejected(self):
        d = Distribution()
        d.add("A", "Red")
        with pytest.raises(ValueError):
            d.add("A", "Again")

    def test_fold_adds_to_entry_and_total(self):
        d = Distribution.with_vocabulary([("A", "Red")])
        assert d.fold("A", 2)
        assert d.get("A").count == 2
        assert d.total.count == 2

    def test_fold_unknown_code_rejected_without_label(self):
        d = Distribution.with_vocabulary([("A", "Red")])
        assert not d.fold("Z", 4)
        assert d.get("Z") is None
        assert d.total.count == 0

    def test_fold_unknown_code_appended_with_label(self):
        d = Distribution.with_vocabulary([("A", "Red")])
        assert d.fold("Z", 4, label="Z")
        assert d.codes() == ["A", TOTAL_CODE, "Z"]
        assert d.total.count == 4

    def test_entries_without_total(self):
        d = Distribution.with_vocabulary([("A", "Red")])
        assert [e.code for e in d.entries(include_total=False)] == ["A"]

    def test_to_dict(self):
        d = Distribution.with_vocabulary([("A", "Red")], total=False)
        d.fold("A", 1)
        assert d.to_dict() == {"A": {"label": "Red", "count": 1, "percentage": 0.0}}

    def test_update_replaces_entry(self):
        d = Distribution.with_vocabulary([("A", "Red")])
        before = d.get("A")
        d.update("A", percentage=50.0)
        assert d.get("A").percentage == 50.0
        assert before.percentage == 0.0
        with pytest.raises(KeyError):
            d.update("Z", count=1)

    def test_freeze(self):
        d = Distribution.with_vocabulary([("A", "Red")])
        d.fold("A", 2)
        assert d.freeze() is d
        assert d.freeze() is d
        with pytest.raises(TypeError):
            d.fold("A", 1)
        assert d == Distribution(d.entries())
        assert d.total.count == 2

    def test_copy_of_frozen_distribution_is_open(self):
        d = Distribution.with_vocabulary([("A", "Red")]).freeze()
        copy = Distribution(d.entries())
        copy.fold("A", 1)
        assert copy.total.count == 1
        assert d.total.count == 0


class TestQuestionReport:
    """Serialized shape: base fields plus exactly one of answers/error, or neither."""

    def _qr(self, result=None):
        return QuestionReport(code="Q1", text="T", type="L", mandatory=True, result=result)

    def test_distribution_answers(self):
        d = Distribution.with_vocabulary([("A", "Red")])
        out = self._qr(d).to_dict()
        assert list(out) == ["code", "text", "type", "mandatory", "numericOnly", "hidden", "answers"]
        assert out["answers"][TOTAL_CODE]["label"] == "Total"

    def test_raw_list_answers(self):
        assert self._qr(RawList(("x", "y"))).to_dict()["answers"] == ["x", "y"]

    def test_suppressed_is_error(self):
        qr = self._qr(Suppressed())
        assert qr.error == SUPPRESSED_MESSAGE
        assert qr.answers is None
        assert "answers" not in qr.to_dict()

    def test_unknown_type_is_error(self):
        assert self._qr(UnknownType(tag="?")).to_dict()["error"] == "ERROR: unknown question type"

    def test_definition_only(self):
        out = self._qr().to_dict()
        assert "answers" not in out
        assert "error" not in out


class TestReport:
    """Read-only group -> key -> entry view."""

    def setup_method(self):
        a = QuestionReport(code="Q1", text="T1", type="T", result=RawList(("x",)))
        b = QuestionReport(code="Q2", text="T2", type="T")
        self.report = Report.from_groups({"G1": {"1X1X1": a}, "G2": {"1X2X2": b}})

    def test_order_and_lookup(self):
        assert list(self.report) == ["G1", "G2"]
        assert self.report.keys() == ["1X1X1", "1X2X2"]
        assert self.report.find("1X2X2").code == "Q2"
        assert self.report.find("nope") is None
        assert "G1" in self.report

    def test_read_only(self):
        with pytest.raises(TypeError):
            self.report.groups["G3"] = {}
        with pytest.raises(TypeError):
            self.report["G1"]["1X1X9"] = None

    def test_to_dict(self):
        out = self.report.to_dict()
        assert out["G1"]["1X1X1"]["answers"] == ["x"]
        assert "answers" not in out["G2"]["1X2X2"]
