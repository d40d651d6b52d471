from __future__ import annotations


def test_catalogue_shape() -> None:
    from services.api.app import email_templates as et

    assert len(et.get_default_templates()) == 12
    assert len(et.TEMPLATE_CATEGORIES) == 5
    assert len(et.COMMON_VARIABLES) == 30
    counts = {c.value: len(et.get_templates_by_category(c.value)) for c in et.TEMPLATE_CATEGORIES}
    assert counts == {"auto-reply": 3, "welcome": 1, "support": 3, "notification": 2, "custom": 3}


def test_default_only_filter_excludes_custom_templates() -> None:
    from services.api.app import email_templates as et

    assert et.get_default_templates_for_category("custom") == []
    assert len(et.get_default_templates_for_category("support")) == 3


def test_get_template_by_id() -> None:
    from services.api.app import email_templates as et

    assert et.get_template_by_id("auto-reply-support").name == "Auto Reply - Support"
    assert et.get_template_by_id("nope") is None


def test_search_is_case_insensitive() -> None:
    from services.api.app import email_templates as et

    ids = {t.id for t in et.search_templates("ESCALATED")}
    assert "support-escalated" in ids
    assert et.search_templates("zzz-no-match") == []


def test_declared_variables_match_placeholders() -> None:
    from services.api.app import email_templates as et

    for t in et.get_default_templates():
        assert sorted(t.variables) == et.extract_variables(t.subject, t.content), t.id


def test_extract_variables_sorted_unique() -> None:
    from services.api.app.email_templates import extract_variables

    assert extract_variables("{{b}} {{a}}", "{{a}} and {{c}}") == ["a", "b", "c"]
    assert extract_variables("", "") == []


def test_validate_reports_required_fields() -> None:
    from services.api.app.email_templates import validate_template

    result = validate_template()
    assert not result.is_valid
    assert result.errors == [
        "Template name is required",
        "Template subject is required",
        "Template content is required",
        "Template category is required",
    ]


def test_validate_rejects_unknown_category() -> None:
    from services.api.app.email_templates import validate_template

    result = validate_template(name="n", subject="s", content="c", category="spam")
    assert result.errors == ["Invalid template category"]


def test_validate_reports_variable_mismatch_both_ways() -> None:
    from services.api.app.email_templates import validate_template

    result = validate_template(
        name="n", subject="Hi {{customerName}}", content="Ticket {{taskNumber}}", category="support", variables=["customerName", "dueDate"]
    )
    assert not result.is_valid
    assert "Variables listed but not used in template: dueDate" in result.errors
    assert "Variables used in template but not listed: taskNumber" in result.errors


def test_validate_accepts_consistent_template() -> None:
    from services.api.app.email_templates import validate_template

    result = validate_template(name="n", subject="{{a}}", content="{{b}}", category="custom", variables=["a", "b"])
    assert result.is_valid
    assert result.errors == []


def test_render_substitutes_and_blanks_empty_values() -> None:
    from services.api.app.email_templates import get_template_by_id, render_template

    t = get_template_by_id("auto-reply-support")
    subject, content = render_template(t, {"subject": "Login broken", "taskNumber": "42", "projectName": None})
    assert subject == "Re: Login broken"
    assert "ticket #42" in content
    assert "\n Support Team" in content
    assert "{{" not in content


def test_render_leaves_unknown_placeholders() -> None:
    from services.api.app.email_templates import get_template_by_id, render_template

    subject, _ = render_template(get_template_by_id("auto-reply-support"), {})
    assert subject == "Re: {{subject}}"
