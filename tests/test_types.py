import unittest

from idlkit.errors import IdlFormatError
from idlkit.types import (
    Array,
    COption,
    Defined,
    EnumDef,
    Field,
    Option,
    Primitive,
    StructDef,
    TypeAlias,
    TypeRegistry,
    Variant,
    Vector,
    format_type,
    integer_bounds,
    parse_type,
    parse_type_definition,
)


class ParseTypeTests(unittest.TestCase):
    def test_primitives_and_legacy_pubkey(self) -> None:
        self.assertEqual(parse_type("u64"), Primitive("u64"))
        self.assertEqual(parse_type("publicKey"), Primitive("pubkey"))
        self.assertTrue(parse_type("i128").is_integer)
        self.assertTrue(parse_type("f32").is_float)

    def test_nested_composites(self) -> None:
        parsed = parse_type({"option": {"vec": {"array": ["u8", 32]}}})
        self.assertEqual(parsed, Option(Vector(Array(Primitive("u8"), 32))))
        self.assertEqual(parse_type({"coption": "pubkey"}), COption(Primitive("pubkey")))

    def test_defined_both_spellings(self) -> None:
        self.assertEqual(parse_type({"defined": "Status"}), Defined("Status"))
        self.assertEqual(parse_type({"defined": {"name": "Status", "generics": []}}), Defined("Status"))
        self.assertEqual(parse_type({"generic": "T"}), Defined("T"))

    def test_rejects_malformed(self) -> None:
        for raw in ("", 7, {"array": ["u8"]}, {"array": ["u8", -1]}, {"vec": "u8", "option": "u8"}, {"tuple": []}):
            with self.subTest(raw=raw):
                with self.assertRaises(IdlFormatError):
                    parse_type(raw)

    def test_format_type(self) -> None:
        descriptor = Option(Vector(Array(Defined("Status"), 3)))
        self.assertEqual(format_type(descriptor), "option<vec<[defined<Status>; 3]>>")

    def test_integer_bounds(self) -> None:
        self.assertEqual(integer_bounds("u8"), (0, 255))
        self.assertEqual(integer_bounds("i8"), (-128, 127))
        self.assertEqual(integer_bounds("u256"), (0, 2**256 - 1))


class TypeDefinitionTests(unittest.TestCase):
    def test_struct_and_tuple_fields(self) -> None:
        definition = parse_type_definition(
            {"name": "Pair", "type": {"kind": "struct", "fields": ["u8", {"name": "b", "type": "bool"}]}}
        )
        self.assertEqual(
            definition,
            StructDef("Pair", (Field(None, Primitive("u8")), Field("b", Primitive("bool")))),
        )

    def test_enum_variants(self) -> None:
        definition = parse_type_definition(
            {
                "name": "Side",
                "type": {"kind": "enum", "variants": [{"name": "Bid"}, {"name": "Ask", "fields": ["u64"]}]},
            }
        )
        self.assertIsInstance(definition, EnumDef)
        self.assertEqual(definition.variants[0], Variant("Bid"))
        self.assertEqual(definition.variant("Ask").fields, (Field(None, Primitive("u64")),))
        self.assertIsNone(definition.variant("Cross"))

    def test_alias(self) -> None:
        definition = parse_type_definition({"name": "Bps", "type": {"kind": "type", "alias": "u16"}})
        self.assertEqual(definition, TypeAlias("Bps", Primitive("u16")))

    def test_unsupported_kind(self) -> None:
        with self.assertRaisesRegex(IdlFormatError, "unsupported kind"):
            parse_type_definition({"name": "X", "type": {"kind": "union"}})


class TypeRegistryTests(unittest.TestCase):
    def test_lookup_is_case_insensitive(self) -> None:
        status = EnumDef("Status", (Variant("Active"),))
        registry = TypeRegistry([status])
        self.assertIs(registry.get("status"), status)
        self.assertIs(registry.get("STATUS"), status)
        self.assertIn("sTaTuS", registry)
        self.assertIsNone(registry.get("Missing"))
        self.assertEqual(len(registry), 1)

    def test_duplicate_names_rejected(self) -> None:
        with self.assertRaisesRegex(IdlFormatError, "Duplicate"):
            TypeRegistry([StructDef("Pool", ()), StructDef("pool", ())])


if __name__ == "__main__":
    unittest.main()
