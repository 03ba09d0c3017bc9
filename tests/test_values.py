import unittest
from pathlib import Path

from idlkit.errors import InvalidEdit
from idlkit.idl import load_idl
from idlkit.resolver import resolve
from idlkit.types import Array, Defined, EnumDef, Option, Primitive, TypeRegistry, Vector
from idlkit.values import (
    FIELDS,
    SOME,
    Append,
    Boolean,
    EnumValue,
    ListValue,
    OptionValue,
    RawJson,
    RemoveAt,
    ReplaceAt,
    Scalar,
    SelectVariant,
    SetBool,
    SetJson,
    SetPresent,
    SetText,
    accepts_text,
    edit,
    from_json,
    synthesize_default,
    to_json,
    validate,
)

DATA_DIR = Path(__file__).with_name("data")


class ValueTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = load_idl(DATA_DIR / "pool_manager.json").registry

    def shape(self, descriptor):
        return resolve(descriptor, self.registry)


class DefaultTests(ValueTestCase):
    def test_defaults_per_shape(self) -> None:
        cases = [
            (Primitive("u64"), Scalar("")),
            (Primitive("string"), Scalar("")),
            (Primitive("bool"), Boolean(False)),
            (Vector(Primitive("u8")), ListValue(())),
            (Array(Primitive("u8"), 3), ListValue(())),
            (Defined("Status"), EnumValue("Active", None)),
            (Option(Defined("Status")), OptionValue(False, None)),
            (Defined("PoolConfig"), RawJson("")),
            (Defined("Missing"), RawJson("")),
        ]
        for descriptor, expected in cases:
            with self.subTest(descriptor=descriptor):
                self.assertEqual(synthesize_default(self.shape(descriptor), self.registry), expected)

    def test_enum_without_variants(self) -> None:
        registry = TypeRegistry([EnumDef("Empty", ())])
        shape = resolve(Defined("Empty"), registry)
        self.assertEqual(synthesize_default(shape, registry), RawJson(""))


class InputFilterTests(ValueTestCase):
    def test_integer_filters(self) -> None:
        signed = self.shape(Primitive("i64"))
        unsigned = self.shape(Primitive("u16"))
        self.assertTrue(accepts_text(signed, "-"))
        self.assertTrue(accepts_text(signed, "-12"))
        self.assertTrue(accepts_text(unsigned, ""))
        self.assertFalse(accepts_text(unsigned, "-1"))
        self.assertFalse(accepts_text(signed, "1.5"))
        self.assertFalse(accepts_text(signed, "1e3"))
        self.assertTrue(accepts_text(self.shape(Primitive("string")), "anything"))

    def test_trailing_newline_is_rejected(self) -> None:
        shape = self.shape(Primitive("u8"))
        self.assertFalse(accepts_text(shape, "7\n"))
        self.assertFalse(accepts_text(self.shape(Primitive("i8")), "-7\n"))
        with self.assertRaises(InvalidEdit):
            edit(Scalar(""), shape, [], SetText("7\n"), self.registry)

    def test_rejected_text_raises(self) -> None:
        shape = self.shape(Primitive("u8"))
        with self.assertRaises(InvalidEdit):
            edit(Scalar(""), shape, [], SetText("abc"), self.registry)
        self.assertEqual(edit(Scalar(""), shape, [], SetText("12"), self.registry), Scalar("12"))


class EditTests(ValueTestCase):
    def test_list_append_and_nested_edit(self) -> None:
        shape = self.shape(Vector(Primitive("u32")))
        value = ListValue(())
        value = edit(value, shape, [], Append(), self.registry)
        value = edit(value, shape, [], Append(), self.registry)
        updated = edit(value, shape, [1], SetText("9"), self.registry)
        self.assertEqual(updated, ListValue((Scalar(""), Scalar("9"))))
        # The input tree is untouched.
        self.assertEqual(value, ListValue((Scalar(""), Scalar(""))))
        self.assertIs(updated.items[0], value.items[0])

    def test_remove_and_replace(self) -> None:
        shape = self.shape(Vector(Primitive("u32")))
        value = ListValue((Scalar("1"), Scalar("2"), Scalar("3")))
        self.assertEqual(
            edit(value, shape, [], RemoveAt(1), self.registry),
            ListValue((Scalar("1"), Scalar("3"))),
        )
        self.assertEqual(
            edit(value, shape, [], ReplaceAt(0, Scalar("7")), self.registry).items[0],
            Scalar("7"),
        )
        with self.assertRaises(InvalidEdit):
            edit(value, shape, [], ReplaceAt(0, Boolean(True)), self.registry)
        with self.assertRaises(InvalidEdit):
            edit(value, shape, [], RemoveAt(3), self.registry)

    def test_fixed_array_append_limit(self) -> None:
        shape = self.shape(Array(Primitive("u8"), 2))
        value = ListValue((Scalar("1"), Scalar("2")))
        with self.assertRaisesRegex(InvalidEdit, "already holds 2"):
            edit(value, shape, [], Append(), self.registry)

    def test_option_toggle(self) -> None:
        shape = self.shape(Option(Defined("Status")))
        value = OptionValue(False, None)
        present = edit(value, shape, [], SetPresent(True), self.registry)
        self.assertEqual(present, OptionValue(True, EnumValue("Active", None)))
        paused = edit(present, shape, [SOME], SelectVariant("Paused"), self.registry)
        self.assertEqual(paused.inner, EnumValue("Paused", None))
        self.assertEqual(edit(paused, shape, [], SetPresent(False), self.registry), OptionValue(False, None))
        # Toggling back on yields a fresh default, not the discarded value.
        again = edit(OptionValue(False, None), shape, [], SetPresent(True), self.registry)
        self.assertEqual(again.inner, EnumValue("Active", None))

    def test_cannot_step_into_absent_option(self) -> None:
        shape = self.shape(Option(Primitive("u64")))
        with self.assertRaises(InvalidEdit):
            edit(OptionValue(False, None), shape, [SOME], SetText("1"), self.registry)

    def test_variant_switch_discards_fields(self) -> None:
        shape = self.shape(Defined("Status"))
        value = EnumValue("Paused", None)
        value = edit(value, shape, [FIELDS], SetJson('{"until": 5}'), self.registry)
        self.assertEqual(value, EnumValue("Paused", RawJson('{"until": 5}')))
        # Re-selecting the current variant keeps the fields.
        self.assertIs(edit(value, shape, [], SelectVariant("Paused"), self.registry), value)
        switched = edit(value, shape, [], SelectVariant("Closed"), self.registry)
        self.assertEqual(switched, EnumValue("Closed", None))
        back = edit(switched, shape, [], SelectVariant("Paused"), self.registry)
        self.assertEqual(back, EnumValue("Paused", None))

    def test_unknown_variant_and_fieldless_variant(self) -> None:
        shape = self.shape(Defined("Status"))
        with self.assertRaises(InvalidEdit):
            edit(EnumValue("Active"), shape, [], SelectVariant("Gone"), self.registry)
        with self.assertRaisesRegex(InvalidEdit, "no fields"):
            edit(EnumValue("Active"), shape, [FIELDS], SetJson("{}"), self.registry)

    def test_op_mismatch(self) -> None:
        with self.assertRaises(InvalidEdit):
            edit(Scalar(""), self.shape(Primitive("u8")), [], SetBool(True), self.registry)
        with self.assertRaises(InvalidEdit):
            edit(Scalar(""), self.shape(Primitive("u8")), [0], SetText("1"), self.registry)


class ValidateTests(ValueTestCase):
    def test_blank_identity_is_incomplete(self) -> None:
        shape = self.shape(Primitive("pubkey"))
        self.assertFalse(validate(Scalar("   "), shape, self.registry))
        self.assertTrue(validate(Scalar(" x "), shape, self.registry))
        # Blank strings are still values.
        self.assertTrue(validate(Scalar(" "), self.shape(Primitive("string")), self.registry))
        optional = self.shape(Option(Primitive("pubkey")))
        self.assertTrue(validate(OptionValue(True, Scalar("  ")), optional, self.registry))

    def test_scalars(self) -> None:
        shape = self.shape(Primitive("u64"))
        self.assertFalse(validate(Scalar(""), shape, self.registry))
        self.assertTrue(validate(Scalar("1"), shape, self.registry))
        self.assertTrue(validate(Boolean(False), self.shape(Primitive("bool")), self.registry))

    def test_options(self) -> None:
        shape = self.shape(Option(Primitive("u64")))
        self.assertTrue(validate(OptionValue(False, None), shape, self.registry))
        self.assertTrue(validate(OptionValue(True, Scalar("")), shape, self.registry))
        self.assertTrue(validate(OptionValue(True, Scalar("3")), shape, self.registry))

    def test_lists(self) -> None:
        vector = self.shape(Vector(Primitive("u8")))
        self.assertTrue(validate(ListValue(()), vector, self.registry))
        self.assertFalse(validate(ListValue((Scalar(""),)), vector, self.registry))
        array = self.shape(Array(Primitive("u8"), 2))
        self.assertFalse(validate(ListValue((Scalar("1"),)), array, self.registry))
        self.assertTrue(validate(ListValue((Scalar("1"), Scalar("2"))), array, self.registry))

    def test_enum_and_opaque(self) -> None:
        enum = self.shape(Defined("Status"))
        self.assertTrue(validate(EnumValue("Closed"), enum, self.registry))
        self.assertFalse(validate(EnumValue("Gone"), enum, self.registry))
        struct = self.shape(Defined("PoolConfig"))
        self.assertFalse(validate(RawJson("  "), struct, self.registry))
        self.assertTrue(validate(RawJson('{"max_depth": 1}'), struct, self.registry))


class JsonTests(ValueTestCase):
    def test_from_json(self) -> None:
        self.assertEqual(
            from_json([1, 2], self.shape(Vector(Primitive("u32"))), self.registry),
            ListValue((Scalar("1"), Scalar("2"))),
        )
        self.assertEqual(
            from_json(None, self.shape(Option(Primitive("u64"))), self.registry),
            OptionValue(False, None),
        )
        self.assertEqual(from_json("Closed", self.shape(Defined("Status")), self.registry), EnumValue("Closed"))
        self.assertEqual(
            from_json({"Paused": {"until": 9}}, self.shape(Defined("Status")), self.registry),
            EnumValue("Paused", RawJson('{"until": 9}')),
        )
        self.assertEqual(
            from_json({"max_depth": 2}, self.shape(Defined("PoolConfig")), self.registry),
            RawJson('{"max_depth": 2}'),
        )
        self.assertEqual(from_json("true", self.shape(Primitive("bool")), self.registry), Boolean(True))

    def test_from_json_rejects_mismatches(self) -> None:
        with self.assertRaises(InvalidEdit):
            from_json("-1", self.shape(Primitive("u8")), self.registry)
        with self.assertRaises(InvalidEdit):
            from_json("Gone", self.shape(Defined("Status")), self.registry)
        with self.assertRaises(InvalidEdit):
            from_json(3, self.shape(Vector(Primitive("u8"))), self.registry)
        with self.assertRaises(InvalidEdit):
            from_json(True, self.shape(Primitive("u8")), self.registry)

    def test_to_json(self) -> None:
        value = ListValue((EnumValue("Active"), EnumValue("Closed", RawJson("[3]")), OptionValue(True, Scalar("x"))))
        self.assertEqual(to_json(value), [{"Active": {}}, {"Closed": [3]}, "x"])
        self.assertEqual(to_json(RawJson("not json")), "not json")


if __name__ == "__main__":
    unittest.main()
