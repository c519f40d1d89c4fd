"""Unit tests for the sync orchestrator."""

from unittest.mock import MagicMock

import pytest

from snet_sync.config import SyncConfig
from snet_sync.syncer import SnetSyncer, SyncPassStats
from tests.fixtures.mock_services import MockCompiler, pad_id
from tests.fixtures.sample_data import calculator_descriptor, make_tar, org_metadata, service_metadata


def build_syncer(config, ledger, content, store, registry, compiler=None, metrics=None):
    return SnetSyncer(
        config,
        ledger=ledger,
        content=content,
        store=store,
        registry=registry,
        compiler=compiler or MockCompiler(),
        metrics=metrics,
    )


def register_service(ledger, content, org_id, service_id, bundle_files=None, bundle_cid=None):
    """Register a service whose metadata and bundle live in the content store."""
    bundle_cid = bundle_cid or f"QmBundle-{service_id}"
    metadata_cid = content.put(f"QmMeta-{service_id}", service_metadata(model_ipfs_hash=bundle_cid))
    ledger.add_service(org_id, service_id, f"ipfs://{metadata_cid}")
    if bundle_files is not None:
        content.put(bundle_cid, make_tar(bundle_files))
    return bundle_cid


def register_org(ledger, content, org_id, service_ids=(), groups=("default_group",)):
    metadata_cid = content.put(f"QmOrg-{org_id}", org_metadata(org_id=org_id, groups=groups))
    return ledger.add_organization(org_id, f"ipfs://{metadata_cid}", service_ids=tuple(service_ids))


class TestSyncPassStats:
    """Test pass statistics."""

    def test_duration_and_dict(self):
        stats = SyncPassStats(started_at=10.0, finished_at=12.5, services_synced=2)

        assert stats.duration == 2.5
        assert stats.to_dict()["duration"] == 2.5
        assert stats.to_dict()["services_synced"] == 2

    def test_duration_never_negative(self):
        assert SyncPassStats(started_at=5.0).duration == 0.0


class TestRunSyncPass:
    """Test a full pass against in-memory collaborators."""

    @pytest.mark.asyncio
    async def test_single_org_single_service(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        """One org, one service, one schema file ends up in the store and the registry."""
        register_org(mock_ledger, mock_content, "example-org", service_ids=["calc"])
        register_service(mock_ledger, mock_content, "example-org", "calc", {"example_service.proto": "syntax"})
        fd = calculator_descriptor()
        compiler = MockCompiler({"example_service.proto": fd})

        syncer = build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry, compiler)
        stats = await syncer.run_sync_pass()

        assert stats.organizations_synced == 1
        assert stats.services_synced == 1
        assert stats.descriptors_added == 1
        assert not stats.aborted
        assert syncer.last_stats is stats

        org = mock_store.organizations[0]
        assert org.snet_id == "example-org"
        assert org.owner == "0x00000000000000000000000000000000000000aa"
        assert mock_store.groups == [(1, org.groups)]

        service = mock_store.services[0]
        assert service.snet_id == "calc"
        assert service.snet_org_id == "example-org"
        assert service.org_id == 1

        assert registry.lookup("calc") == [fd]
        assert compiler.calls == [("example_service.proto", ("example_service.proto",))]
        assert "Snet ID: calc" in registry.render()

    @pytest.mark.asyncio
    async def test_every_file_compiled_against_whole_bundle(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        register_org(mock_ledger, mock_content, "org", service_ids=["svc"])
        register_service(mock_ledger, mock_content, "org", "svc", {"main.proto": "m", "common.proto": "c"})
        compiler = MockCompiler({"main.proto": calculator_descriptor("main.proto")})

        syncer = build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry, compiler)
        stats = await syncer.run_sync_pass()

        assert compiler.calls == [
            ("main.proto", ("main.proto", "common.proto")),
            ("common.proto", ("main.proto", "common.proto")),
        ]
        assert stats.descriptors_added == 1
        assert stats.compile_failures == 1
        assert [fd.name for fd in registry.lookup("svc")] == ["main.proto"]
        # Failed compiles are kept as placeholders
        assert registry.identities() == ["svc"]

    @pytest.mark.asyncio
    async def test_zero_service_org(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        """An org without services persists org and groups but adds nothing to the registry."""
        register_org(mock_ledger, mock_content, "lonely", groups=("g1", "g2"))

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert stats.organizations_synced == 1
        assert len(mock_store.organizations) == 1
        assert [g.group_name for g in mock_store.groups[0][1]] == ["g1", "g2"]
        assert registry.identities() == []

    @pytest.mark.asyncio
    async def test_listing_failure_is_empty_pass(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        register_org(mock_ledger, mock_content, "org")
        mock_ledger.fail_listing = True

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert stats.organizations_seen == 0
        assert mock_store.organizations == []
        assert stats.finished_at >= stats.started_at

    @pytest.mark.asyncio
    async def test_org_failures_skip_only_that_org(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        register_org(mock_ledger, mock_content, "lookup-fails")
        register_org(mock_ledger, mock_content, "fetch-fails")
        register_org(mock_ledger, mock_content, "decode-fails")
        register_org(mock_ledger, mock_content, "good")
        mock_ledger.failing_orgs.add(pad_id("lookup-fails"))
        mock_content.failing.add("QmOrg-fetch-fails")
        mock_content.put("QmOrg-decode-fails", b"{broken")

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert stats.organizations_seen == 4
        assert stats.organizations_skipped == 3
        assert [org.snet_id for org in mock_store.organizations] == ["good"]

    @pytest.mark.asyncio
    async def test_org_insert_failure_uses_zero_id(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        """Groups and services are still written, against id 0."""
        register_org(mock_ledger, mock_content, "org", service_ids=["svc"])
        register_service(mock_ledger, mock_content, "org", "svc", {"a.proto": "a"})
        mock_store.fail_organizations = True

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert stats.organizations_synced == 1
        assert mock_store.groups[0][0] == 0
        assert mock_store.services[0].org_id == 0

    @pytest.mark.asyncio
    async def test_group_and_service_insert_failures_continue(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        register_org(mock_ledger, mock_content, "org", service_ids=["svc"])
        register_service(mock_ledger, mock_content, "org", "svc", {"a.proto": "a"})
        mock_store.fail_groups = True
        mock_store.fail_services = True
        compiler = MockCompiler({"a.proto": calculator_descriptor("a.proto")})

        stats = await build_syncer(
            sync_config, mock_ledger, mock_content, mock_store, registry, compiler
        ).run_sync_pass()

        assert stats.services_synced == 1
        assert registry.descriptor_count() == 1

    @pytest.mark.asyncio
    async def test_service_lookup_failure_skips_service(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        register_org(mock_ledger, mock_content, "org", service_ids=["bad", "good"])
        register_service(mock_ledger, mock_content, "org", "bad", {"bad.proto": "x"})
        register_service(mock_ledger, mock_content, "org", "good", {"good.proto": "x"})
        mock_ledger.failing_services.add(pad_id("bad"))

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert stats.services_skipped == 1
        assert [s.snet_id for s in mock_store.services] == ["good"]

    @pytest.mark.asyncio
    async def test_service_metadata_failure_skips_by_default(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        register_org(mock_ledger, mock_content, "org-a", service_ids=["broken", "fine"])
        register_org(mock_ledger, mock_content, "org-b", service_ids=["later"])
        register_service(mock_ledger, mock_content, "org-a", "broken")
        register_service(mock_ledger, mock_content, "org-a", "fine")
        register_service(mock_ledger, mock_content, "org-b", "later")
        mock_content.put("QmMeta-broken", b"not json")

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert not stats.aborted
        assert stats.services_skipped == 1
        assert [s.snet_id for s in mock_store.services] == ["fine", "later"]

    @pytest.mark.asyncio
    async def test_service_metadata_failure_aborts_when_configured(
        self, mock_ledger, mock_content, mock_store, registry
    ):
        config = SyncConfig(abort_pass_on_service_metadata_error=True)
        register_org(mock_ledger, mock_content, "org-a", service_ids=["broken", "fine"])
        register_org(mock_ledger, mock_content, "org-b", service_ids=["later"])
        register_service(mock_ledger, mock_content, "org-a", "broken")
        register_service(mock_ledger, mock_content, "org-a", "fine")
        register_service(mock_ledger, mock_content, "org-b", "later")
        mock_content.failing.add("QmMeta-broken")

        syncer = build_syncer(config, mock_ledger, mock_content, mock_store, registry)
        stats = await syncer.run_sync_pass()

        assert stats.aborted
        assert stats.organizations_seen == 1
        assert mock_store.services == []
        assert [org.snet_id for org in mock_store.organizations] == ["org-a"]
        assert syncer.last_stats is stats

    @pytest.mark.asyncio
    async def test_bundle_fetch_failure_does_not_stop_siblings(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        """A missing bundle contributes nothing; the next service still compiles."""
        register_org(mock_ledger, mock_content, "org", service_ids=["missing", "present"])
        register_service(mock_ledger, mock_content, "org", "missing")
        register_service(mock_ledger, mock_content, "org", "present", {"p.proto": "p"})
        compiler = MockCompiler({"p.proto": calculator_descriptor("p.proto")})

        stats = await build_syncer(
            sync_config, mock_ledger, mock_content, mock_store, registry, compiler
        ).run_sync_pass()

        assert stats.services_synced == 2
        assert registry.identities() == ["present"]
        assert registry.lookup("missing") == []

    @pytest.mark.asyncio
    async def test_corrupt_bundle_contributes_nothing(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        register_org(mock_ledger, mock_content, "org", service_ids=["svc"])
        register_service(mock_ledger, mock_content, "org", "svc")
        mock_content.put("QmBundle-svc", b"garbage bytes")

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert stats.services_synced == 1
        assert registry.identities() == []

    @pytest.mark.asyncio
    async def test_no_bundle_locator(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        register_org(mock_ledger, mock_content, "org", service_ids=["svc"])
        mock_content.put("QmMeta-svc", service_metadata(model_ipfs_hash=None))
        mock_ledger.add_service("org", "svc", "QmMeta-svc")

        stats = await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry).run_sync_pass()

        assert stats.services_synced == 1
        assert mock_content.requests == ["QmOrg-org", "QmMeta-svc"]


class TestResync:
    """Test repeated passes over the same registry."""

    async def _two_passes(self, config, ledger, content, store, registry):
        register_org(ledger, content, "org", service_ids=["svc"])
        register_service(ledger, content, "org", "svc", {"a.proto": "a"})
        compiler = MockCompiler({"a.proto": calculator_descriptor("a.proto")})
        syncer = build_syncer(config, ledger, content, store, registry, compiler)
        await syncer.run_sync_pass()
        await syncer.run_sync_pass()

    @pytest.mark.asyncio
    async def test_replace_on_resync(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        await self._two_passes(sync_config, mock_ledger, mock_content, mock_store, registry)

        assert len(registry.lookup("svc")) == 1
        assert registry.render().count("Path: a.proto") == 1

    @pytest.mark.asyncio
    async def test_append_on_resync(self, mock_ledger, mock_content, mock_store, registry):
        config = SyncConfig(replace_descriptors_on_resync=False)

        await self._two_passes(config, mock_ledger, mock_content, mock_store, registry)

        assert len(registry.lookup("svc")) == 2

    @pytest.mark.asyncio
    async def test_failed_bundle_keeps_previous_descriptors(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        register_org(mock_ledger, mock_content, "org", service_ids=["svc"])
        register_service(mock_ledger, mock_content, "org", "svc", {"a.proto": "a"})
        compiler = MockCompiler({"a.proto": calculator_descriptor("a.proto")})
        syncer = build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry, compiler)

        await syncer.run_sync_pass()
        mock_content.failing.add("QmBundle-svc")
        await syncer.run_sync_pass()

        assert len(registry.lookup("svc")) == 1

    @pytest.mark.asyncio
    async def test_orgs_sharing_service_id_keep_both(
        self, sync_config, mock_ledger, mock_content, mock_store, registry
    ):
        """Service ids are unique per org only; one pass keeps every org's entries."""
        for org_id in ("org-a", "org-b"):
            register_org(mock_ledger, mock_content, org_id, service_ids=["example-service"])
            bundle_cid = mock_content.put(f"QmBundle-{org_id}", make_tar({f"{org_id}.proto": org_id}))
            metadata_cid = mock_content.put(f"QmMeta-{org_id}", service_metadata(model_ipfs_hash=bundle_cid))
            mock_ledger.add_service(org_id, "example-service", f"ipfs://{metadata_cid}")
        compiler = MockCompiler({
            "org-a.proto": calculator_descriptor("org-a.proto"),
            "org-b.proto": calculator_descriptor("org-b.proto"),
        })
        syncer = build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry, compiler)

        stats = await syncer.run_sync_pass()

        assert stats.descriptors_added == 2
        assert [fd.name for fd in registry.lookup("example-service")] == ["org-a.proto", "org-b.proto"]

        await syncer.run_sync_pass()

        assert [fd.name for fd in registry.lookup("example-service")] == ["org-a.proto", "org-b.proto"]


class TestMetrics:
    """Test metrics reporting from a pass."""

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        register_org(mock_ledger, mock_content, "org", service_ids=["svc", "broken"])
        register_service(mock_ledger, mock_content, "org", "svc", {"a.proto": "a", "b.proto": "b"})
        register_service(mock_ledger, mock_content, "org", "broken")
        mock_content.put("QmMeta-broken", b"[]")
        compiler = MockCompiler({"a.proto": calculator_descriptor("a.proto")})
        metrics = MagicMock()

        await build_syncer(
            sync_config, mock_ledger, mock_content, mock_store, registry, compiler, metrics
        ).run_sync_pass()

        metrics.record_entity.assert_any_call("organization", "synced")
        metrics.record_entity.assert_any_call("service", "synced")
        metrics.record_entity.assert_any_call("service", "skipped")
        metrics.record_compile_failure.assert_called_once()
        metrics.set_registry_size.assert_called_once_with(1)
        outcome, duration, finished_at = metrics.record_sync_pass.call_args.args
        assert outcome == "completed"
        assert duration >= 0
        assert finished_at > 0

    @pytest.mark.asyncio
    async def test_errors_recorded_by_component(self, sync_config, mock_ledger, mock_content, mock_store, registry):
        register_org(mock_ledger, mock_content, "org", service_ids=["broken", "no-bundle"])
        register_service(mock_ledger, mock_content, "org", "broken")
        register_service(mock_ledger, mock_content, "org", "no-bundle")
        mock_content.put("QmMeta-broken", b"[]")
        metrics = MagicMock()

        await build_syncer(sync_config, mock_ledger, mock_content, mock_store, registry, metrics=metrics).run_sync_pass()

        metrics.record_error.assert_any_call("METADATA_DECODE_ERROR", "decoder")
        metrics.record_error.assert_any_call("CONTENT_FETCH_ERROR", "content")
        assert metrics.record_error.call_count == 2
