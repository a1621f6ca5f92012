from wizard import FieldSpec, FieldType, Option, Step, WizardDefinition, build_summary
from wizard.summary import MASK, SummarySection, display_value


def test_display_values_by_type():
    options = [Option("a", "Alpha"), Option("b", "Beta")]

    assert display_value(FieldSpec("s", type=FieldType.SELECT), "a", options) == "Alpha"
    assert display_value(FieldSpec("m", type=FieldType.MULTI_SELECT), ["a", "b"], options) == "Alpha, Beta"
    assert display_value(FieldSpec("f", type=FieldType.BOOLEAN), True) == "Enabled"
    assert display_value(FieldSpec("f", type=FieldType.BOOLEAN), False) == "Disabled"
    assert display_value(FieldSpec("l", type=FieldType.STRUCT_LIST), [{}, {}]) == "2 item(s)"
    assert display_value(FieldSpec("t"), "") == "-"
    assert display_value(FieldSpec("t"), "plain") == "plain"


def test_secret_values_are_masked():
    spec = FieldSpec("password", secret=True)

    assert display_value(spec, "hunter2") == MASK
    assert display_value(spec, "") == "-"


def test_build_summary_appends_review_sections():
    definition = WizardDefinition(
        id="summary",
        title="Summary",
        steps=(
            Step("basics", "Basics", fields=(FieldSpec("name", "Name"), FieldSpec("token", "Token", secret=True))),
            Step("review", "Review"),
        ),
        review_sections=(
            lambda store: SummarySection("Extra", (("Length", str(len(store.get("name")))),)),
            lambda store: None,
        ),
    )

    sections = build_summary(definition, definition.default_store({"name": "web", "token": "abc"}))

    assert [s.title for s in sections] == ["Basics", "Extra"]
    assert sections[0].items == (("Name", "web"), ("Token", "***"))
    assert sections[0].as_dict() == {"title": "Basics", "items": [["Name", "web"], ["Token", "***"]]}
    assert sections[1].items == (("Length", "3"),)
