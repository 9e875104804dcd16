# -*- coding: utf-8 -*-

from __future__ import annotations

import shutil
import tempfile
import unittest
from pathlib import Path

from calorielog.storage import (
    FileTooLargeError,
    FileTypeNotAllowedError,
    InvalidProviderError,
    LocalStorageProvider,
    ProviderNotInitializedError,
    StorageConfig,
    StorageService,
    StoredFileNotFoundError,
    UnsupportedProviderError,
    UploadedFile,
)

BASE_URL = "http://localhost:8000/uploads"


class TestLocalStorageProvider(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="calorielog-storage-"))
        self.base = self._tmp / "uploads"
        self.temp = self._tmp / "temp"
        self.config = StorageConfig(
            provider="local",
            base_path=self.base,
            base_url=BASE_URL,
            temp_dir=self.temp,
            max_file_size=1024,
            allowed_mime_types=["image/jpeg", "image/png"],
        )
        self.provider = LocalStorageProvider()
        self.provider.initialize(self.config)

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _stage(self, name: str, data: bytes, mime: str = "image/jpeg") -> UploadedFile:
        path = self.temp / name
        path.write_bytes(data)
        return UploadedFile(path=path, filename=name, mime_type=mime, size=len(data))

    def test_initialize_creates_directories(self) -> None:
        self.assertTrue(self.base.is_dir())
        self.assertTrue(self.temp.is_dir())
        self.assertTrue(self.provider.initialized)

    def test_initialize_rejects_other_provider_tags(self) -> None:
        provider = LocalStorageProvider()
        with self.assertRaises(InvalidProviderError):
            provider.initialize(self.config.model_copy(update={"provider": "s3"}))
        self.assertFalse(provider.initialized)

    def test_operations_require_initialize(self) -> None:
        provider = LocalStorageProvider()
        with self.assertRaises(ProviderNotInitializedError):
            provider.upload_file(self._stage("a.jpg", b"x"))
        with self.assertRaises(ProviderNotInitializedError):
            provider.get_file_url("abc")
        with self.assertRaises(ProviderNotInitializedError):
            provider.delete_file("abc")
        with self.assertRaises(ProviderNotInitializedError):
            provider.file_exists("abc")

    def test_upload_round_trip(self) -> None:
        data = b"\xff\xd8\xff" + b"0" * 200
        staged = self._stage("Lunch Plate.JPG", data)

        result = self.provider.upload_file(staged)

        self.assertEqual(result.provider, "local")
        self.assertEqual(result.metadata.size, len(data))
        self.assertEqual(result.metadata.mime_type, "image/jpeg")
        self.assertEqual(result.metadata.filename, "Lunch Plate.JPG")
        self.assertEqual(result.url, f"{BASE_URL}/{result.file_id}.JPG")
        stored = self.base / f"{result.file_id}.JPG"
        self.assertEqual(stored.read_bytes(), data)
        self.assertEqual(result.metadata.path, str(stored.resolve()))
        # The staged temp file is consumed.
        self.assertFalse(staged.path.exists())

        self.assertTrue(self.provider.file_exists(result.file_id))
        self.assertEqual(self.provider.get_file_url(result.file_id), result.url)

    def test_file_ids_are_unique(self) -> None:
        first = self.provider.upload_file(self._stage("a.png", b"one", "image/png"))
        second = self.provider.upload_file(self._stage("a.png", b"two", "image/png"))
        self.assertNotEqual(first.file_id, second.file_id)

    def test_upload_without_extension(self) -> None:
        result = self.provider.upload_file(self._stage("photo", b"abc"))
        self.assertEqual(result.url, f"{BASE_URL}/{result.file_id}")
        self.assertTrue(self.provider.file_exists(result.file_id))

    def test_disallowed_type_writes_nothing(self) -> None:
        staged = self._stage("doc.pdf", b"%PDF", "application/pdf")
        with self.assertRaises(FileTypeNotAllowedError) as ctx:
            self.provider.upload_file(staged)
        self.assertIn("not allowed", str(ctx.exception))
        self.assertEqual(ctx.exception.code, "FILE_TYPE_NOT_ALLOWED")
        self.assertEqual(list(self.base.iterdir()), [])

    def test_too_large_writes_nothing(self) -> None:
        staged = self._stage("big.jpg", b"0" * 1025)
        with self.assertRaises(FileTooLargeError):
            self.provider.upload_file(staged)
        self.assertEqual(list(self.base.iterdir()), [])

    def test_size_at_limit_is_accepted(self) -> None:
        result = self.provider.upload_file(self._stage("edge.jpg", b"0" * 1024))
        self.assertEqual(result.metadata.size, 1024)

    def test_delete_then_exists_is_false(self) -> None:
        result = self.provider.upload_file(self._stage("a.jpg", b"abc"))
        self.provider.delete_file(result.file_id)
        self.assertFalse(self.provider.file_exists(result.file_id))
        with self.assertRaises(StoredFileNotFoundError):
            self.provider.delete_file(result.file_id)

    def test_missing_file_lookups(self) -> None:
        self.assertFalse(self.provider.file_exists("nope"))
        with self.assertRaises(StoredFileNotFoundError):
            self.provider.get_file_url("nope")

    def test_lookup_does_not_match_by_prefix(self) -> None:
        result = self.provider.upload_file(self._stage("a.jpg", b"abc"))
        self.assertFalse(self.provider.file_exists(result.file_id[:8]))
        self.assertFalse(self.provider.file_exists("../uploads"))

    def test_check_file(self) -> None:
        self.provider.check_file("image/png", 10)
        with self.assertRaises(FileTypeNotAllowedError):
            self.provider.check_file("image/gif", 10)
        with self.assertRaises(FileTooLargeError):
            self.provider.check_file("image/png", 4096)


class TestStorageService(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="calorielog-service-"))
        self.config = StorageConfig(
            provider="local",
            base_path=self._tmp / "uploads",
            base_url=BASE_URL,
            temp_dir=self._tmp / "temp",
            max_file_size=1024,
            allowed_mime_types=["image/jpeg"],
        )

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def test_unknown_provider_is_rejected(self) -> None:
        with self.assertRaises(UnsupportedProviderError):
            StorageService(self.config.model_copy(update={"provider": "gcs"}))

    def test_dispatches_to_local_provider(self) -> None:
        service = StorageService(self.config)
        self.assertIsInstance(service.provider, LocalStorageProvider)
        service.initialize()

        staged = self.config.temp_dir / "x.jpg"
        staged.write_bytes(b"abc")
        result = service.upload_file(UploadedFile(path=staged, filename="x.jpg", mime_type="image/jpeg", size=3))

        self.assertTrue(service.file_exists(result.file_id))
        self.assertEqual(service.get_file_url(result.file_id), result.url)
        service.delete_file(result.file_id)
        self.assertFalse(service.file_exists(result.file_id))

    def test_requires_initialize(self) -> None:
        service = StorageService(self.config)
        with self.assertRaises(ProviderNotInitializedError):
            service.check_file("image/jpeg", 1)

    def test_no_directories_when_disabled(self) -> None:
        config = self.config.model_copy(update={"create_directories": False})
        service = StorageService(config)
        service.initialize()
        self.assertFalse(config.base_path.exists())
        self.assertFalse(service.file_exists("anything"))


if __name__ == "__main__":
    unittest.main()
