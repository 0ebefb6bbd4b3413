"""Tests for symbol display formats."""

import dataclasses

import pytest

from codegraph_cs.display import (
    FULLY_QUALIFIED_FORMAT,
    SIGNATURE_FORMAT,
    AnalysisOptions,
    to_display_string,
    type_to_display_string,
)
from codegraph_cs.symbols import (
    ArrayTypeRef,
    EnumMemberSymbol,
    ErrorTypeRef,
    FieldSymbol,
    MethodSymbol,
    NamedTypeRef,
    NamedTypeSymbol,
    NamespaceSymbol,
    NullableTypeRef,
    Parameter,
    PropertySymbol,
    SpecialTypeRef,
    TupleTypeRef,
    TypeKind,
    TypeParameterRef,
)


@pytest.fixture
def namespace() -> NamespaceSymbol:
    return NamespaceSymbol("").get_or_add_namespace("Acme").get_or_add_namespace("Billing")


def _type(namespace, name, kind=TypeKind.CLASS, type_parameters=()):
    symbol = NamedTypeSymbol(name, kind, namespace, type_parameters)
    namespace.types[(name, len(type_parameters))] = symbol
    return symbol


class TestFullyQualifiedFormat:
    """Test canonical ids."""

    def test_namespace_is_dotted_path(self, namespace):
        assert to_display_string(namespace, FULLY_QUALIFIED_FORMAT) == "Acme.Billing"

    def test_nested_type(self, namespace):
        outer = _type(namespace, "Invoice")
        inner = NamedTypeSymbol("Line", TypeKind.CLASS, outer)
        assert to_display_string(inner, FULLY_QUALIFIED_FORMAT) == "Acme.Billing.Invoice.Line"

    def test_generic_type_member(self, namespace):
        box = _type(namespace, "Box", type_parameters=("T",))
        put = MethodSymbol("Put", box, parameters=[Parameter("item", TypeParameterRef("T"))])
        assert to_display_string(put, FULLY_QUALIFIED_FORMAT) == "Acme.Billing.Box<T>.Put(T)"

    def test_method_parameters_have_modifiers_but_no_names(self, namespace):
        owner = _type(namespace, "Calc")
        method = MethodSymbol(
            "Sum",
            owner,
            ("T",),
            [
                Parameter("a", SpecialTypeRef("int"), ("ref",)),
                Parameter("rest", ArrayTypeRef(SpecialTypeRef("string")), ("params",)),
            ],
        )
        assert to_display_string(method, FULLY_QUALIFIED_FORMAT) == (
            "Acme.Billing.Calc.Sum<T>(ref int, params string[])"
        )

    def test_overloads_are_distinct(self, namespace):
        owner = _type(namespace, "Calc")
        by_int = MethodSymbol("Scale", owner, parameters=[Parameter("f", SpecialTypeRef("int"))])
        by_double = MethodSymbol("Scale", owner, parameters=[Parameter("f", SpecialTypeRef("double"))])
        assert to_display_string(by_int, FULLY_QUALIFIED_FORMAT) != to_display_string(
            by_double, FULLY_QUALIFIED_FORMAT
        )

    def test_fields_properties_and_enum_members(self, namespace):
        owner = _type(namespace, "Invoice")
        color = _type(namespace, "Status", TypeKind.ENUM)
        assert to_display_string(FieldSymbol("total", owner), FULLY_QUALIFIED_FORMAT) == (
            "Acme.Billing.Invoice.total"
        )
        assert to_display_string(PropertySymbol("Total", owner), FULLY_QUALIFIED_FORMAT) == (
            "Acme.Billing.Invoice.Total"
        )
        assert to_display_string(EnumMemberSymbol("Paid", color), FULLY_QUALIFIED_FORMAT) == (
            "Acme.Billing.Status.Paid"
        )

    def test_explicit_interface_member(self, namespace):
        iface = _type(namespace, "INamed", TypeKind.INTERFACE)
        owner = _type(namespace, "Invoice")
        prop = PropertySymbol("Name", owner, NamedTypeRef(iface))
        assert to_display_string(prop, FULLY_QUALIFIED_FORMAT) == (
            "Acme.Billing.Invoice.Acme.Billing.INamed.Name"
        )

    def test_global_namespace_type_has_no_prefix(self):
        root = NamespaceSymbol("")
        symbol = _type(root, "Program")
        assert to_display_string(symbol, FULLY_QUALIFIED_FORMAT) == "Program"


class TestTypeDisplay:
    """Test rendering of type references."""

    def test_nullable_value_and_reference_types(self):
        assert type_to_display_string(NullableTypeRef(SpecialTypeRef("int")), FULLY_QUALIFIED_FORMAT) == "int?"
        assert type_to_display_string(NullableTypeRef(SpecialTypeRef("string")), FULLY_QUALIFIED_FORMAT) == "string"

    def test_unresolved_generic(self):
        ref = ErrorTypeRef(
            names=("System", "Collections", "Generic", "List"),
            arities=(0, 0, 0, 1),
            type_args=(SpecialTypeRef("int"),),
        )
        assert type_to_display_string(ref, FULLY_QUALIFIED_FORMAT) == "System.Collections.Generic.List<int>"
        assert type_to_display_string(ref, SIGNATURE_FORMAT) == "List<int>"

    def test_tuple(self):
        ref = TupleTypeRef(((SpecialTypeRef("int"), "x"), (SpecialTypeRef("int"), None)))
        assert type_to_display_string(ref, FULLY_QUALIFIED_FORMAT) == "(int x, int)"

    def test_metadata_names_when_keywords_disabled(self):
        fmt = FULLY_QUALIFIED_FORMAT.with_options(use_special_type_keywords=False)
        assert type_to_display_string(SpecialTypeRef("int"), fmt) == "System.Int32"


class TestSignatureFormat:
    """Test method signatures."""

    def test_signature_includes_names_and_modifiers(self, namespace):
        owner = _type(namespace, "Calc")
        method = MethodSymbol(
            "M",
            owner,
            ("T",),
            [
                Parameter("a", SpecialTypeRef("int"), ("ref",)),
                Parameter("rest", ArrayTypeRef(SpecialTypeRef("string")), ("params",)),
            ],
        )
        assert to_display_string(method, SIGNATURE_FORMAT) == "M<T>(ref int a, params string[] rest)"

    def test_signature_uses_short_type_names(self, namespace):
        owner = _type(namespace, "Calc")
        money = _type(namespace, "Money")
        method = MethodSymbol("Add", owner, parameters=[Parameter("amount", NamedTypeRef(money))])
        assert to_display_string(method, SIGNATURE_FORMAT) == "Add(Money amount)"


class TestFormatValues:
    """Test that formats are immutable values."""

    def test_format_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            FULLY_QUALIFIED_FORMAT.qualify_names = False

    def test_with_options_returns_new_format(self):
        fmt = FULLY_QUALIFIED_FORMAT.with_options(include_parameters=False)
        assert fmt is not FULLY_QUALIFIED_FORMAT
        assert FULLY_QUALIFIED_FORMAT.include_parameters is True

    def test_analysis_options_defaults(self):
        options = AnalysisOptions()
        assert options.id_format == FULLY_QUALIFIED_FORMAT
        assert options.signature_format == SIGNATURE_FORMAT
