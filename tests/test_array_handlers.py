from survey_report.report.entries import TOTAL_CODE, Distribution, RawList, Suppressed


class TestAnswerCodeArray:
    """Array (F/H): one key per sub-question over the question's answer codes."""

    def _array(self, metadata, tag="F"):
        q = metadata.add_question(7, tag, "Q7", "Rate")
        metadata.add_subs(7, ("SQ1", "Speed"), ("SQ2", "Price"))
        metadata.add_answers(7, ("1", "Bad"), ("2", "Fair"), ("3", "Good"))
        return q

    def test_independent_distributions_per_sub_question(self, metadata, responses, populate):
        q = self._array(metadata)
        responses.set("123456X10X7SQ1", {1: "1", 2: "3", 3: "3"})
        responses.set("123456X10X7SQ2", {1: "2"})

        entries = populate(q)

        assert list(entries) == ["123456X10X7SQ1", "123456X10X7SQ2"]
        first = entries["123456X10X7SQ1"].result
        second = entries["123456X10X7SQ2"].result
        assert first.codes() == ["1", "2", "3", TOTAL_CODE]
        assert [e.count for e in first] == [1, 0, 2, 3]
        assert first.get("3").percentage == 66.67
        assert [e.count for e in second] == [0, 1, 0, 1]

    def test_codes_and_texts(self, metadata, populate):
        q = self._array(metadata, tag="H")
        qr = populate(q)["123456X10X7SQ2"]
        assert qr.code == "Q7[SQ2]"
        assert qr.text == "Rate [Price]"
        assert qr.type == "H"
        assert qr.numeric_only is False

    def test_no_answer_codes_gives_empty_result(self, metadata, populate):
        q = metadata.add_question(7, "F", "Q7", "Rate")
        metadata.add_subs(7, ("SQ1", "Speed"))
        assert populate(q)["123456X10X7SQ1"].result == Distribution()
        assert isinstance(populate(q, cutoff=1)["123456X10X7SQ1"].result, Suppressed)

    def test_no_sub_questions_emits_nothing(self, metadata, populate):
        q = metadata.add_question(7, "F", "Q7", "Rate")
        assert populate(q) == {}

    def test_allow_list_selects_one_sub_question(self, metadata, populate):
        q = self._array(metadata)
        assert list(populate(q, allow={"123456X10X7SQ2"})) == ["123456X10X7SQ2"]


class TestFixedScaleArrays:
    """Arrays with a built-in scale (A, B, C, E)."""

    def test_five_point_array_ignores_out_of_scale_values(self, metadata, responses, populate):
        q = metadata.add_question(8, "A", "Q8")
        metadata.add_subs(8, ("SQ1", "One"))
        responses.set("123456X10X8SQ1", {1: "1", 2: "5", 3: "7"})

        qr = populate(q)["123456X10X8SQ1"]

        assert qr.numeric_only is True
        assert qr.result.codes() == ["1", "2", "3", "4", "5", TOTAL_CODE]
        assert qr.result.total.count == 2
        assert qr.result.get("5").percentage == 50.0

    def test_ten_point_scale(self, metadata, populate):
        q = metadata.add_question(8, "B", "Q8")
        metadata.add_subs(8, ("SQ1", "One"))
        assert len(populate(q)["123456X10X8SQ1"].result) == 11

    def test_yes_uncertain_no(self, metadata, responses, populate):
        q = metadata.add_question(8, "C", "Q8")
        metadata.add_subs(8, ("SQ1", "One"))
        responses.set("123456X10X8SQ1", {1: "Y", 2: "U", 3: "Y"})

        result = populate(q)["123456X10X8SQ1"].result

        assert [(e.code, e.label, e.count) for e in result] == [
            ("Y", "Yes", 2), ("U", "Uncertain", 1), ("N", "No", 0), (TOTAL_CODE, "Total", 3)
        ]

    def test_increase_same_decrease(self, metadata, populate):
        q = metadata.add_question(8, "E", "Q8")
        metadata.add_subs(8, ("SQ1", "One"))
        result = populate(q)["123456X10X8SQ1"].result
        assert [e.label for e in result] == ["Increase", "Same", "Decrease", "Total"]


class TestDualScaleArray:
    """Array dual scale: #0 and #1 keys per sub-question, each on its own answer set."""

    def test_keys_and_vocabularies(self, metadata, responses, populate):
        q = metadata.add_question(9, "1", "Q9", "Pick")
        metadata.add_subs(9, ("SQ1", "Apples"), ("SQ2", "Pears"))
        metadata.add_answers(9, ("a", "Low"), ("b", "High"), scale=0)
        metadata.add_answers(9, ("x", "Rarely"), ("y", "Often"), scale=1)
        responses.set("123456X10X9SQ1#1", {1: "y", 2: "y"})

        entries = populate(q)

        assert list(entries) == [
            "123456X10X9SQ1#0", "123456X10X9SQ1#1", "123456X10X9SQ2#0", "123456X10X9SQ2#1"
        ]
        assert entries["123456X10X9SQ1#0"].result.codes() == ["a", "b", TOTAL_CODE]
        scale_two = entries["123456X10X9SQ1#1"]
        assert scale_two.result.codes() == ["x", "y", TOTAL_CODE]
        assert scale_two.result.get("y").count == 2
        assert scale_two.text == "Pick [Apples][Scale 2]"


class TestCrossTabArrays:
    """Arrays of numbers (:) and texts (;)."""

    def _grid(self, metadata, tag):
        q = metadata.add_question(11, tag, "Q11", "Grid")
        metadata.add_subs(11, ("R1", "Row 1"), ("R2", "Row 2"))
        metadata.add_subs(11, ("C1", "Col 1"), ("C2", "Col 2"), scale=1)
        return q

    def test_numbers_are_data_driven(self, metadata, responses, populate):
        q = self._grid(metadata, ":")
        responses.set("123456X10X11R1_C2", {1: "3", 2: "10", 3: "3"})

        entries = populate(q)

        assert list(entries) == [
            "123456X10X11R1_C1", "123456X10X11R1_C2", "123456X10X11R2_C1", "123456X10X11R2_C2"
        ]
        cell = entries["123456X10X11R1_C2"]
        assert cell.numeric_only is True
        assert cell.text == "Grid [Row 1][Col 2]"
        assert cell.result.codes() == ["10", "3", TOTAL_CODE]
        assert cell.result.get("3").count == 2
        assert cell.result.get("3").percentage == 66.67

    def test_numbers_without_answers(self, metadata, populate):
        q = self._grid(metadata, ":")
        assert populate(q)["123456X10X11R1_C1"].result == Distribution()
        assert isinstance(populate(q, cutoff=2)["123456X10X11R1_C1"].result, Suppressed)

    def test_texts_are_raw_lists(self, metadata, responses, populate):
        q = self._grid(metadata, ";")
        metadata.set_attributes(11, numbers_only=True)
        responses.set("123456X10X11R2_C1", {2: "b", 1: "a"})

        cell = populate(q)["123456X10X11R2_C1"]

        assert cell.result == RawList(("a", "b"))
        assert cell.numeric_only is True

    def test_rows_only_without_columns(self, metadata, populate):
        q = metadata.add_question(11, ";", "Q11", "Grid")
        metadata.add_subs(11, ("R1", "Row 1"))
        assert list(populate(q)) == ["123456X10X11R1"]
