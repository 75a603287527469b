from collections import Counter

from backend.services.loaders import build_token_map, load_tests, parse_patient_rows, parse_test_rows


def test_tests_are_sorted_by_order_then_label():
    tests = parse_test_rows(
        [
            {"code": "B", "label": "B", "order": "2"},
            {"code": "A", "label": "A", "order": "1"},
            {"code": "D", "label": "b", "order": "5"},
            {"code": "C", "label": "Z", "order": "5"},
        ]
    )
    assert [t.code for t in tests] == ["A", "B", "C", "D"]


def test_test_rows_are_defaulted_and_blank_codes_dropped():
    discarded = Counter()
    tests = parse_test_rows(
        [
            {"code": "  XYZ  ", "order": "abc", "source": None},
            {"code": "   ", "label": "Stray"},
            {"label": "No code"},
            "not a row",
        ],
        discarded,
    )
    assert len(tests) == 1
    test = tests[0]
    assert test.code == "XYZ"
    assert test.label == "XYZ"
    assert test.order == 9999
    assert test.source == "profissional"
    assert test.form_url == ""
    assert discarded == Counter({"empty code": 2, "not a record": 1})


def test_patient_rows_keep_every_column_as_text():
    patients = parse_patient_rows([{"nome": "Ana", "cpf": "123.456.789-01", "BAI": "sim", "age": 7, "notes": None}])
    assert len(patients) == 1
    patient = patients[0]
    assert patient.name == "Ana"
    assert patient.cpf == "12345678901"
    assert patient.columns["age"] == "7"
    assert patient.columns["notes"] == ""


def test_token_map_last_row_wins():
    tokens = build_token_map([{"cpf": "111", "token": "x"}, {"cpf": "111", "token": "y"}])
    assert tokens == {"111": "y"}


def test_token_map_uses_canonical_cpf_and_skips_incomplete_rows():
    discarded = Counter()
    tokens = build_token_map(
        [
            {"cpf": "123.456.789-01", "token": " abc "},
            {"cpf": "---", "token": "lost"},
            {"cpf": "999", "token": "  "},
        ],
        discarded,
    )
    assert tokens == {"12345678901": "abc"}
    assert discarded == Counter({"empty cpf": 1, "empty token": 1})


def test_load_tests_filters_active_rows_on_the_server(fake_client):
    tests = load_tests(fake_client)
    assert ("Tests", {"active": "sim"}) in fake_client.calls
    assert [t.code for t in tests] == ["SRS", "BAI", "CBCL"]
