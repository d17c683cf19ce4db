"""Tests for the unit descriptor table.

Covers descriptor normalization, catalog validation and the default
seven-unit catalog.
"""

import pytest
from stackweave.config import build_config
from stackweave.core.errors import CatalogError, ConfigurationError, CycleDetected
from stackweave.orchestration import InputSource, UnitCatalog, UnitDescriptor, category_enabled
from stackweave.units import DEFAULT_UNITS, default_catalog


def always(config):
    return True


class TestUnitDescriptor:
    def test_collections_are_normalized(self):
        desc = UnitDescriptor("db", always, depends_on=["net"], requires=["vpc"], produces=["db"])

        assert desc.depends_on == ("net",)
        assert desc.requires == frozenset({"vpc"})
        assert desc.produces == frozenset({"db"})

    def test_config_category_defaults_to_name(self):
        assert UnitDescriptor("db", always).config_category == "db"
        assert UnitDescriptor("db", always, category="database").config_category == "database"

    def test_all_dependencies_lists_hard_then_optional(self):
        desc = UnitDescriptor("m", always, depends_on=("a",), optional_depends_on=("b", "c"))
        assert desc.all_dependencies == ("a", "b", "c")

    def test_category_enabled_reads_flag(self, flags):
        predicate = category_enabled("network")

        assert predicate(flags("network")) is True
        assert predicate(flags("storage")) is False
        assert predicate.__name__ == "network_enabled"

    def test_failing_predicate_is_a_configuration_error(self):
        desc = UnitDescriptor("cdn", category_enabled("cdn"))

        with pytest.raises(ConfigurationError, match="Unit 'cdn' enablement check failed") as exc_info:
            desc.is_enabled(build_config({}))

        assert exc_info.value.details == {"unit": "cdn", "category": "cdn", "cause": "KeyError"}

    def test_failing_section_lookup_is_a_configuration_error(self):
        desc = UnitDescriptor("edge", always, category="cdn")

        with pytest.raises(ConfigurationError, match="'cdn' section lookup failed"):
            desc.config_for(build_config({}))


class TestCatalogValidation:
    def test_duplicate_names_rejected(self):
        with pytest.raises(CatalogError, match="Duplicate unit name: a"):
            UnitCatalog.from_descriptors([UnitDescriptor("a", always), UnitDescriptor("a", always)])

    def test_unknown_dependency_rejected(self):
        with pytest.raises(CatalogError, match="unknown unit 'ghost'"):
            UnitCatalog.from_descriptors([UnitDescriptor("a", always, depends_on=("ghost",))])

    def test_self_dependency_is_a_cycle(self):
        with pytest.raises(CycleDetected):
            UnitCatalog.from_descriptors([UnitDescriptor("a", always, depends_on=("a",))])

    def test_cycle_rejected(self):
        with pytest.raises(CycleDetected) as exc_info:
            UnitCatalog.from_descriptors(
                [
                    UnitDescriptor("a", always, depends_on=("b",)),
                    UnitDescriptor("b", always, depends_on=("a",)),
                ]
            )
        assert set(exc_info.value.units) == {"a", "b"}

    def test_cycle_through_optional_edge_rejected(self):
        with pytest.raises(CycleDetected):
            UnitCatalog.from_descriptors(
                [
                    UnitDescriptor("a", always, optional_depends_on=("b",)),
                    UnitDescriptor("b", always, depends_on=("a",)),
                ]
            )

    def test_required_and_optional_overlap_rejected(self):
        with pytest.raises(CatalogError, match="both required and optional"):
            UnitCatalog.from_descriptors(
                [
                    UnitDescriptor("a", always),
                    UnitDescriptor("b", always, depends_on=("a",), optional_depends_on=("a",)),
                ]
            )

    def test_required_input_must_be_published_by_dependency(self):
        with pytest.raises(CatalogError, match="required input 'vpc'"):
            UnitCatalog.from_descriptors(
                [
                    UnitDescriptor("net", always, produces={"subnet"}),
                    UnitDescriptor("db", always, depends_on=("net",), requires={"vpc"}),
                ]
            )

    def test_input_from_non_dependency_rejected(self):
        # "other" publishes vpc, but db does not depend on it.
        with pytest.raises(CatalogError):
            UnitCatalog.from_descriptors(
                [
                    UnitDescriptor("net", always),
                    UnitDescriptor("other", always, produces={"vpc"}),
                    UnitDescriptor("db", always, depends_on=("net",), requires={"vpc"}),
                ]
            )

    def test_ambiguous_publisher_rejected(self):
        with pytest.raises(CatalogError, match="ambiguous"):
            UnitCatalog.from_descriptors(
                [
                    UnitDescriptor("a", always, produces={"vpc"}),
                    UnitDescriptor("b", always, produces={"vpc"}),
                    UnitDescriptor("c", always, depends_on=("a", "b"), requires={"vpc"}),
                ]
            )

    def test_optional_input_must_come_from_optional_dependency(self):
        with pytest.raises(CatalogError, match="optional input 'bucket'"):
            UnitCatalog.from_descriptors(
                [
                    UnitDescriptor("storage", always, produces={"bucket"}),
                    UnitDescriptor("auth", always, depends_on=("storage",), optional_inputs={"bucket"}),
                ]
            )

    def test_unknown_unit_lookup(self, chain_catalog):
        with pytest.raises(CatalogError, match="Unknown unit: z"):
            chain_catalog.get("z")


class TestCatalogQueries:
    def test_preserves_declaration_order(self, chain_catalog):
        assert chain_catalog.names() == ["a", "b", "c", "d"]
        assert len(chain_catalog) == 4
        assert "c" in chain_catalog
        assert "z" not in chain_catalog

    def test_input_sources(self, chain_catalog):
        assert chain_catalog.input_sources("c") == [InputSource(unit="b", handle="b_out")]
        assert chain_catalog.input_sources("a") == []

    def test_dependents(self, diamond_catalog):
        assert diamond_catalog.dependents("root") == ["left", "right"]
        assert diamond_catalog.dependents("join") == []

    def test_ancestors(self, diamond_catalog):
        assert diamond_catalog.ancestors("join") == {"root", "left", "right"}

    def test_independent(self, diamond_catalog):
        assert diamond_catalog.independent("left", "right")
        assert not diamond_catalog.independent("root", "join")
        assert not diamond_catalog.independent("left", "left")


class TestDefaultCatalog:
    def test_declaration_order(self):
        assert default_catalog().names() == [
            "network",
            "storage",
            "database",
            "auth",
            "compute",
            "serverless",
            "monitoring",
        ]

    def test_one_unit_per_category(self):
        assert [d.config_category for d in DEFAULT_UNITS] == [d.name for d in DEFAULT_UNITS]

    def test_database_consumes_network_handles(self):
        sources = default_catalog().input_sources("database")
        assert {(s.unit, s.handle, s.optional) for s in sources} == {
            ("network", "vpc", False),
            ("network", "database_security_group", False),
        }

    def test_auth_bucket_is_optional(self):
        catalog = default_catalog()
        auth = catalog.get("auth")

        assert auth.depends_on == ()
        assert auth.optional_depends_on == ("storage",)
        assert catalog.input_sources("auth") == [InputSource("storage", "bucket", optional=True)]

    def test_monitoring_watches_everything_optionally(self):
        monitoring = default_catalog().get("monitoring")

        assert monitoring.depends_on == ()
        assert set(monitoring.optional_depends_on) == {"compute", "database", "serverless"}

    def test_independent_branches(self):
        catalog = default_catalog()
        assert catalog.independent("database", "compute")
        assert catalog.independent("network", "storage")
        assert not catalog.independent("network", "serverless")
