from __future__ import annotations

import unittest

from shapes import COERCION_CALLS, Shape, coerce, is_atomic, paren, satisfies


class SatisfiesTests(unittest.TestCase):
    def test_refined_number_satisfies_number(self) -> None:
        self.assertTrue(satisfies(Shape.NUMBER_NOT_NAN, Shape.NUMBER))
        self.assertFalse(satisfies(Shape.NUMBER, Shape.NUMBER_NOT_NAN))

    def test_any_desire_accepts_everything(self) -> None:
        for shape in Shape:
            self.assertTrue(satisfies(shape, Shape.ANY))

    def test_stack_is_never_coerced(self) -> None:
        self.assertTrue(satisfies(Shape.STACK, Shape.NUMBER))
        self.assertTrue(satisfies(Shape.STRING, Shape.STACK))

    def test_distinct_shapes_do_not_satisfy(self) -> None:
        self.assertFalse(satisfies(Shape.STRING, Shape.NUMBER))
        self.assertFalse(satisfies(Shape.ANY, Shape.BOOLEAN))
        self.assertFalse(satisfies(Shape.NUMBER_NOT_NAN, Shape.INDEX))


class CoerceTests(unittest.TestCase):
    def test_matching_shapes_emit_no_coercion(self) -> None:
        for shape in Shape:
            source = coerce("value", shape, shape)
            self.assertEqual(source, "value")
            for call in COERCION_CALLS:
                self.assertNotIn(call, source)

    def test_wrappers(self) -> None:
        self.assertEqual(coerce("this.answer", Shape.STRING, Shape.NUMBER), "this.toNumber(this.answer)")
        self.assertEqual(coerce("x", Shape.ANY, Shape.NUMBER_NOT_NAN), "this.toNumber(x)")
        self.assertEqual(coerce("x", Shape.ANY, Shape.BOOLEAN), "this.toBoolean(x)")
        self.assertEqual(coerce("this.x", Shape.NUMBER_NOT_NAN, Shape.STRING), "this.toString(this.x)")

    def test_index_adjustment(self) -> None:
        self.assertEqual(coerce("this.x", Shape.NUMBER_NOT_NAN, Shape.INDEX), "this.x - 1")
        self.assertEqual(coerce("a + b", Shape.NUMBER_NOT_NAN, Shape.INDEX), "(a + b) - 1")
        self.assertEqual(coerce("this.answer", Shape.STRING, Shape.INDEX), "this.toNumber(this.answer) - 1")


class AtomicTests(unittest.TestCase):
    def test_atomic_sources(self) -> None:
        for source in ("this.x", "10", '"a + b"', 'f("a", b)', "(a + b)", "this.vars.items[0]"):
            self.assertTrue(is_atomic(source), source)

    def test_compound_sources(self) -> None:
        for source in ("-1", "!done", "a + b", "a === b", "x ? y : z", "new Date()"):
            self.assertFalse(is_atomic(source), source)

    def test_paren(self) -> None:
        self.assertEqual(paren("this.x"), "this.x")
        self.assertEqual(paren("a * b"), "(a * b)")


if __name__ == "__main__":
    unittest.main()
