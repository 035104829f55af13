from luaguard.core.models import FindingKind
from luaguard.healing.brackets import analyze_brackets
from luaguard.healing.scanner import scan


def analyze(text):
    result = scan(text)
    return analyze_brackets(result.spans, result.lines)


def test_balanced_nested_table():
    brackets = analyze("local t = {\n  a = {1, 2},\n  b = f(t[1]),\n}")
    assert brackets.findings == []
    assert brackets.unclosed == []
    assert brackets.error_count == 0


def test_unclosed_paren_reports_open_location():
    brackets = analyze("print((1)")
    assert [(f.kind, f.line, f.column) for f in brackets.findings] == [
        (FindingKind.UNCLOSED_BRACKET, 1, 6),
    ]
    assert [m.char for m in brackets.unclosed] == ["("]


def test_mismatch_carries_both_locations():
    brackets = analyze("x = (1]")
    finding = brackets.findings[0]
    assert finding.kind is FindingKind.BRACKET_MISMATCH
    assert (finding.line, finding.column) == (1, 7)
    assert (finding.related_line, finding.related_column) == (1, 5)


def test_mismatch_across_lines():
    brackets = analyze("f({\n  1,\n)")
    finding = brackets.findings[0]
    assert finding.kind is FindingKind.BRACKET_MISMATCH
    assert (finding.line, finding.related_line, finding.related_column) == (3, 1, 3)


def test_closer_with_empty_stack():
    brackets = analyze("x = 1)")
    assert [(f.kind, f.column) for f in brackets.findings] == [(FindingKind.UNEXPECTED_CLOSER, 6)]


def test_brackets_in_strings_and_comments_are_inert():
    brackets = analyze('print("(")\n-- ]\nlocal s = [[ { ]]\nlocal c = \'}\'')
    assert brackets.findings == []


def test_long_bracket_delimiters_are_not_brackets():
    brackets = analyze("local s = [==[\n]]\n]==]")
    assert brackets.findings == []
