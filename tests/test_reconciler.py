"""Tests for upload_verify.reconciler"""

from __future__ import annotations

from tests.assertions import assert_equal, assert_keys
from tests.fake_transport import s3_style_etag
from upload_verify.dispatcher import UploadOutcome
from upload_verify.reconciler import (
    VerificationResult,
    VerificationStatus,
    classify,
    group_by_directory,
    key_directory,
    partition_failures,
    reconcile_catalog,
    reconcile_uploads,
)
from upload_verify.transport import RemoteEntry
from upload_verify.walker import walk_directory


class TestReconcileUploads:
    """Contract A: returned upload ETags against precomputed fingerprints"""

    def test_matching_tag_is_verified(self):
        outcome = UploadOutcome(key="a.txt", integrity_tag="abc", attempts_used=1)

        report = reconcile_uploads([outcome], {"a.txt": "abc"})

        assert_equal(report.results[0].status, VerificationStatus.VERIFIED)
        assert_equal(report.succeeded, 1)

    def test_different_tag_is_mismatch(self):
        outcome = UploadOutcome(key="a.txt", integrity_tag="def", attempts_used=1)

        report = reconcile_uploads([outcome], {"a.txt": "abc"})

        assert_equal(report.results[0].status, VerificationStatus.MISMATCH)
        assert_keys(report.failures, ["a.txt"])

    def test_multipart_suffix_and_quotes_are_ignored(self):
        outcome = UploadOutcome(key="big", integrity_tag='"abc-3"', attempts_used=1)

        report = reconcile_uploads([outcome], {"big": "abc"})

        assert report.results[0].verified

    def test_wrong_part_count_is_mismatch(self, small_settings):
        """A multipart tag whose -N suffix disagrees with the chunk size does not verify"""
        outcome = UploadOutcome(key="big", integrity_tag="abc-2", size_bytes=40, multipart=True)

        report = reconcile_uploads([outcome], {"big": "abc"}, small_settings)

        assert_equal(report.results[0].status, VerificationStatus.MISMATCH)

    def test_expected_part_count_verifies(self, small_settings):
        outcome = UploadOutcome(key="big", integrity_tag="abc-5", size_bytes=40, multipart=True)

        report = reconcile_uploads([outcome], {"big": "abc"}, small_settings)

        assert report.results[0].verified

    def test_failed_uploads_are_not_compared(self):
        ok = UploadOutcome(key="ok", integrity_tag="abc", attempts_used=1)
        failed = UploadOutcome(key="bad", error="boom", attempts_used=3)

        report = reconcile_uploads([ok, failed], {"ok": "abc", "bad": "zzz"})

        assert_equal([result.key for result in report.results], ["ok"])
        assert_keys(report.upload_failures, ["bad"])
        assert_equal((report.attempted, report.succeeded, report.failed), (2, 1, 1))

    def test_missing_fingerprint_is_unreadable(self):
        outcome = UploadOutcome(key="a", integrity_tag="abc", attempts_used=1)

        report = reconcile_uploads([outcome], {})

        assert_equal(report.results[0].status, VerificationStatus.LOCAL_UNREADABLE)


class TestReconcileCatalog:
    """Contract B: local files against a bucket listing"""

    def test_statuses(self, make_tree, small_settings):
        root = make_tree(
            {
                "same.txt": b"same",
                "big/changed.bin": b"z" * 40,
                "missing.txt": b"nobody uploaded me",
            }
        )
        files = walk_directory(root)
        catalog = {
            "same.txt": RemoteEntry("same.txt", 4, s3_style_etag(b"same", None)),
            "big/changed.bin": RemoteEntry("big/changed.bin", 40, s3_style_etag(b"y" * 40, 8)),
        }

        report = reconcile_catalog(files, catalog, small_settings)

        statuses = {result.key: result.status for result in report.results}
        assert_equal(
            statuses,
            {
                "same.txt": VerificationStatus.VERIFIED,
                "big/changed.bin": VerificationStatus.MISMATCH,
                "missing.txt": VerificationStatus.REMOTE_MISSING,
            },
        )
        assert_equal(len(report.results), len(files))

    def test_multipart_object_verifies(self, make_tree, small_settings):
        data = bytes(range(40))
        files = walk_directory(make_tree({"big.bin": data}))
        catalog = {"big.bin": RemoteEntry("big.bin", 40, s3_style_etag(data, small_settings.chunk_size))}

        report = reconcile_catalog(files, catalog, small_settings)

        assert report.results[0].verified

    def test_unreadable_file_yields_result(self, make_tree, small_settings):
        files = walk_directory(make_tree({"gone.txt": b"x"}))
        files[0].absolute_path.unlink()
        catalog = {"gone.txt": RemoteEntry("gone.txt", 1, "abc")}

        report = reconcile_catalog(files, catalog, small_settings)

        assert_equal(report.results[0].status, VerificationStatus.LOCAL_UNREADABLE)
        assert_equal(report.results[0].remote_tag, "abc")

    def test_on_result_callback(self, make_tree, small_settings):
        files = walk_directory(make_tree({"a": b"1", "b": b"2"}))
        seen = []

        reconcile_catalog(files, {}, small_settings, on_result=lambda entry, result: seen.append(result.key))

        assert_equal(seen, ["a", "b"])


def test_classify_missing_remote_wins():
    assert_equal(classify(None, None), VerificationStatus.REMOTE_MISSING)


def test_classify_checks_part_count_only_when_suffix_present():
    assert_equal(classify("abc", "abc-3", expected_parts=2), VerificationStatus.MISMATCH)
    assert_equal(classify("abc", "abc-2", expected_parts=2), VerificationStatus.VERIFIED)
    assert_equal(classify("abc", "abc", expected_parts=2), VerificationStatus.VERIFIED)


def test_partition_failures_keeps_order():
    results = [
        VerificationResult("a", "1", "1", VerificationStatus.VERIFIED),
        VerificationResult("b", "1", "2", VerificationStatus.MISMATCH),
        VerificationResult("c", "1", None, VerificationStatus.REMOTE_MISSING),
    ]

    assert_equal([result.key for result in partition_failures(results)], ["b", "c"])


def test_group_by_directory_first_appearance_order():
    results = [
        VerificationResult(key, "x", "x", VerificationStatus.VERIFIED)
        for key in ["z/1", "a/1", "top", "z/2", "a/b/1"]
    ]

    groups = group_by_directory(results)

    assert_equal(list(groups), ["z", "a", ".", "a/b"])
    assert_equal([result.key for result in groups["z"]], ["z/1", "z/2"])


def test_key_directory():
    assert_equal(key_directory("a/b/c.txt"), "a/b")
    assert_equal(key_directory("c.txt"), ".")


def test_counts_include_upload_failures():
    report = reconcile_uploads(
        [
            UploadOutcome(key="ok", integrity_tag="a", attempts_used=1),
            UploadOutcome(key="bad", error="boom", attempts_used=3),
        ],
        {"ok": "a"},
    )

    counts = report.counts()

    assert_equal(counts["Verified"], 1)
    assert_equal(counts["Upload failed"], 1)
