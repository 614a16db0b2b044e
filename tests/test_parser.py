"""Tests for the recursive-descent parser and its error recovery."""

from __future__ import annotations

import pytest

from errors import LexError, ParseError, ParseErrorKind
from lexer import Lexer
from models import BinaryExpr, ExprStmt, GroupingExpr, LiteralExpr, PrintStmt, UnaryExpr
from printer import DebugPrinter, RpnPrinter


def parser_for(source: str):
    return Lexer(source).advance_to_parsing()


def debug(source: str) -> str:
    return DebugPrinter.print(parser_for(source).parse())


class TestGrammar:
    def test_worked_example(self) -> None:
        assert debug('2 + (3 - 4) * 9 != "foo"') == '(!= (+ 2 (* (group (- 3 4)) 9)) "foo")'

    def test_node_variants(self) -> None:
        expr = parser_for("-(1) * true").parse()
        assert isinstance(expr, BinaryExpr)
        assert isinstance(expr.left, UnaryExpr)
        assert isinstance(expr.left.right, GroupingExpr)
        assert isinstance(expr.right, LiteralExpr)
        assert expr.right.value is True

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("1 - 2 - 3", "(- (- 1 2) 3)"),
            ("8 / 4 / 2", "(/ (/ 8 4) 2)"),
            ("1 < 2 < 3", "(< (< 1 2) 3)"),
            ("1 == 2 != 3", "(!= (== 1 2) 3)"),
        ],
    )
    def test_same_precedence_chains_nest_left(self, source: str, expected: str) -> None:
        assert debug(source) == expected

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("1 + 2 * 3", "(+ 1 (* 2 3))"),
            ("1 < 2 == true", "(== (< 1 2) true)"),
            ("1 > 2 >= 3 <= 4", "(<= (>= (> 1 2) 3) 4)"),
            ("-1 * 2", "(* (- 1) 2)"),
        ],
    )
    def test_precedence(self, source: str, expected: str) -> None:
        assert debug(source) == expected

    def test_unary_and_primaries(self) -> None:
        assert debug("!!true") == "(! (! true))"
        assert debug("nil") == "nil"
        assert debug("false") == "false"
        assert debug('"s"') == '"s"'

    def test_tokens_after_expression_stay_in_stream(self) -> None:
        parser = parser_for("1 2")
        assert DebugPrinter.print(parser.parse()) == "1"
        assert DebugPrinter.print(parser.parse()) == "2"
        assert parser.at_end()

    def test_lex_errors_are_filtered_into_diagnostics(self) -> None:
        parser = parser_for("1 @ + 2")
        assert DebugPrinter.print(parser.parse()) == "(+ 1 2)"
        assert len(parser.diagnostics) == 1
        assert isinstance(parser.diagnostics[0], LexError)


class TestPrinters:
    def test_rpn_worked_example(self) -> None:
        expr = parser_for('2 + (3 - 4) * 9 != "foo"').parse()
        assert RpnPrinter.print(expr) == '2 3 4 - 9 * + "foo" !='

    def test_rpn_drops_groupings(self) -> None:
        expr = parser_for("(1 + 2) * (4 - 3)").parse()
        assert DebugPrinter.print(expr) == "(* (group (+ 1 2)) (group (- 4 3)))"
        assert RpnPrinter.print(expr) == "1 2 + 4 3 - *"

    def test_printers_do_not_alter_tree(self) -> None:
        expr = parser_for("-123 * (45.67)").parse()
        before = expr.model_dump()
        assert DebugPrinter.print(expr) == "(* (- 123) (group 45.67))"
        assert expr.model_dump() == before


class TestErrors:
    def test_unclosed_group_at_eof(self) -> None:
        with pytest.raises(ParseError) as exc:
            parser_for("(1 + 2").parse()
        assert exc.value.kind is ParseErrorKind.UNEXPECTED_EOF

    def test_unclosed_group_with_tokens_left(self) -> None:
        with pytest.raises(ParseError) as exc:
            parser_for("(1 + 2 3").parse()
        assert exc.value.kind is ParseErrorKind.UNCLOSED_PARENTHESES
        assert exc.value.token.lexeme == "3"
        assert "Occurred at [1:7] number: 3" in str(exc.value)

    def test_invalid_expression(self) -> None:
        with pytest.raises(ParseError) as exc:
            parser_for(") 1").parse()
        assert exc.value.kind is ParseErrorKind.INVALID_EXPRESSION
        assert exc.value.code == "E_PARSE_INVALID_EXPRESSION"

    @pytest.mark.parametrize("source", ["", "1 +", "!", "// nothing"])
    def test_empty_stream(self, source: str) -> None:
        with pytest.raises(ParseError) as exc:
            parser_for(source).parse()
        assert exc.value.kind is ParseErrorKind.UNEXPECTED_EOF

    def test_deep_nesting_is_fatal(self) -> None:
        source = "(" * 5000 + "1" + ")" * 5000
        with pytest.raises(ParseError) as exc:
            parser_for(source).parse()
        assert exc.value.is_fatal()


class TestRecovery:
    def test_resumes_after_semicolon(self) -> None:
        parser = parser_for("1 + ) ; 2 * 3")
        assert DebugPrinter.print(parser.parse_recovering()) == "(* 2 3)"
        assert [d.kind for d in parser.diagnostics] == [ParseErrorKind.INVALID_EXPRESSION]

    def test_resumes_before_statement_keyword(self) -> None:
        parser = parser_for("1 + ) 4 print")
        with pytest.raises(ParseError) as exc:
            parser.parse_recovering()
        # stops before 'print', which is not an expression, then runs out of input
        assert exc.value.kind is ParseErrorKind.EOF_WHILE_SYNCHRONIZING
        assert [d.kind for d in parser.diagnostics] == [
            ParseErrorKind.INVALID_EXPRESSION,
            ParseErrorKind.INVALID_EXPRESSION,
        ]
        assert parser.diagnostics[1].token.lexeme == "print"

    def test_eof_while_synchronizing(self) -> None:
        parser = parser_for("1 + ) 2 3")
        with pytest.raises(ParseError) as exc:
            parser.parse_recovering()
        assert exc.value.kind is ParseErrorKind.EOF_WHILE_SYNCHRONIZING
        assert len(parser.diagnostics) == 1

    def test_fatal_is_not_recovered(self) -> None:
        parser = parser_for("(" * 5000 + "1" + ")" * 5000 + "; 2")
        with pytest.raises(ParseError) as exc:
            parser.parse_recovering()
        assert exc.value.is_fatal()
        assert parser.diagnostics == []


class TestStatements:
    def test_program(self) -> None:
        parser = parser_for('print 1 + 2; "a";')
        program = parser.parse_program()
        assert [type(s) for s in program] == [PrintStmt, ExprStmt]
        assert DebugPrinter.print(program[0].expression) == "(+ 1 2)"
        assert parser.diagnostics == []

    def test_missing_semicolon_recovers(self) -> None:
        parser = parser_for("print 1 2; print 3;")
        program = parser.parse_program()
        assert len(program) == 1
        assert DebugPrinter.print(program[0].expression) == "3"
        assert parser.diagnostics[0].kind is ParseErrorKind.MISSING_SEMICOLON
        assert parser.diagnostics[0].token.lexeme == "2"

    def test_missing_semicolon_at_eof(self) -> None:
        parser = parser_for("1 + 2")
        assert parser.parse_program() == []
        assert [d.kind for d in parser.diagnostics] == [
            ParseErrorKind.MISSING_SEMICOLON,
            ParseErrorKind.EOF_WHILE_SYNCHRONIZING,
        ]

    def test_multiple_errors_are_all_collected(self) -> None:
        parser = parser_for(") ; ) ; print true;")
        program = parser.parse_program()
        assert len(program) == 1
        assert isinstance(program[0], PrintStmt)
        assert len(parser.diagnostics) == 2


class TestWholeInput:
    def test_leftover_tokens_are_reported(self) -> None:
        parser = parser_for('"a" * 1e20')
        assert DebugPrinter.print(parser.parse_whole()) == '(* "a" 1)'
        [diag] = parser.diagnostics
        assert diag.kind is ParseErrorKind.TRAILING_TOKENS
        assert diag.token.lexeme == "e20"
        assert not parser.at_end()

    def test_clean_input_has_no_diagnostics(self) -> None:
        parser = parser_for("1 + 2")
        parser.parse_whole()
        assert parser.diagnostics == []

    def test_with_recovery(self) -> None:
        parser = parser_for("1 + ) ; 2 3")
        assert DebugPrinter.print(parser.parse_whole(recover=True)) == "2"
        assert [d.kind for d in parser.diagnostics] == [
            ParseErrorKind.INVALID_EXPRESSION,
            ParseErrorKind.TRAILING_TOKENS,
        ]


class TestLongChains:
    def test_printers_handle_long_flat_chain(self) -> None:
        expr = parser_for("1" + " + 1" * 5000).parse()
        assert RpnPrinter.print(expr) == "1" + " 1 +" * 5000
        assert DebugPrinter.print(expr) == "(+ " * 5000 + "1" + " 1)" * 5000
