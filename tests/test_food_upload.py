# -*- coding: utf-8 -*-

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


def _setup_env(tmp: Path) -> None:
    data_root = tmp / "data"
    os.environ["CALORIELOG_DATA_ROOT"] = str(data_root)
    os.environ["CALORIELOG_DB_PATH"] = str(data_root / "calorielog.db")
    os.environ["CALORIELOG_JWT_SECRET"] = "test-secret"
    os.environ["STORAGE_BASE_PATH"] = str(data_root / "uploads")
    os.environ["STORAGE_TEMP_DIR"] = str(data_root / "temp")
    os.environ["STORAGE_BASE_URL"] = "http://testserver/uploads"
    os.environ["STORAGE_MAX_FILE_MB"] = "1"
    os.environ.pop("STORAGE_ALLOWED_MIME_TYPES", None)
    os.environ.pop("OPENAI_API_KEY", None)
    os.environ.pop("STORAGE_CREATE_DIRECTORIES", None)
    os.environ.pop("CALORIELOG_ADMIN_EMAILS", None)

    # Ensure settings/app reflect the env vars above.
    for name in list(sys.modules.keys()):
        if name == "calorielog" or name.startswith("calorielog."):
            sys.modules.pop(name, None)


class TestUploadPipeline(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="calorielog-upload-"))
        _setup_env(cls._tmp)

        from calorielog import app_db  # noqa: WPS433 (import inside test for env control)
        from calorielog.auth.storage import create_user
        from calorielog.config import settings
        from calorielog.food_upload import models, service
        from calorielog.nutrition import storage as nutrition_storage
        from calorielog.storage import StorageConfig, StorageService

        app_db.init_app_db(settings.app_db_path)
        cls.models = models
        cls.service = service
        cls.nutrition_storage = nutrition_storage
        cls.user = create_user(email="pipeline@example.com", name="Pipeline", password_hash="x")

        cls.storage = StorageService(StorageConfig.from_settings(settings))
        cls.storage.initialize()

    @classmethod
    def tearDownClass(cls) -> None:
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def _analysis(self):
        return self.models.FoodAnalysisResult(
            name="Pancakes",
            ingredients=["flour", "egg", "milk"],
            portion=180,
            nutrition={"calories": 420, "protein": 11, "carbs": 60, "fat": 14},
        )

    def _meal(self, meal: str):
        from calorielog.nutrition.models import MealType  # noqa: WPS433

        return MealType(meal)

    def _run(self, analyzer, *, mime: str = "image/jpeg", data: bytes = JPEG_BYTES, meal: str = "BREAKFAST"):
        return self.service.handle_upload(
            user_id=self.user["id"],
            image_bytes=data,
            filename="pancakes.jpg",
            mime_type=mime,
            meal_type=self._meal(meal),
            storage=self.storage,
            analyzer=analyzer,
            consumed_at=datetime(2024, 3, 4, 8, 30),
        )

    def _temp_files(self):
        return list(self.storage.config.temp_dir.iterdir())

    def test_success_stores_file_and_logs_meal(self) -> None:
        seen = {}

        def analyzer(*, image_bytes, image_mime):
            seen["bytes"] = image_bytes
            seen["mime"] = image_mime
            return self._analysis()

        result = self._run(analyzer)

        self.assertTrue(result.success)
        self.assertIsNone(result.error)
        self.assertEqual(seen, {"bytes": JPEG_BYTES, "mime": "image/jpeg"})
        self.assertEqual(result.analysis.name, "Pancakes")
        self.assertEqual(result.storage.metadata.size, len(JPEG_BYTES))
        self.assertTrue(self.storage.file_exists(result.storage.file_id))
        self.assertEqual(self._temp_files(), [])

        log = self.nutrition_storage.get_food_log(self.user["id"], result.food_log_id)
        self.assertIsNotNone(log)
        self.assertEqual(log.name, "Pancakes")
        self.assertEqual(log.portion, 180)
        self.assertEqual(log.meal_type.value, "BREAKFAST")
        self.assertEqual(log.nutrition.calories, 420)
        self.assertEqual(log.image_url, result.storage.url)
        self.assertEqual(self.nutrition_storage.get_image_file_id(self.user["id"], log.id), result.storage.file_id)

    def test_disallowed_type_skips_analysis(self) -> None:
        analyzer = mock.Mock(return_value=self._analysis())

        result = self._run(analyzer, mime="application/pdf")

        self.assertFalse(result.success)
        self.assertEqual(result.error.code, "FILE_TYPE_NOT_ALLOWED")
        analyzer.assert_not_called()

    def test_too_large_is_rejected(self) -> None:
        analyzer = mock.Mock(return_value=self._analysis())

        result = self._run(analyzer, data=b"0" * (self.storage.config.max_file_size + 1))

        self.assertFalse(result.success)
        self.assertEqual(result.error.code, "FILE_TOO_LARGE")
        analyzer.assert_not_called()

    def test_analysis_failure_stores_nothing(self) -> None:
        before = set(self.storage.config.base_path.iterdir())

        result = self._run(lambda **_: self.models.FoodAnalysisError(code="PARSE_ERROR", message="bad reply"))

        self.assertFalse(result.success)
        self.assertEqual(result.error.code, "PARSE_ERROR")
        self.assertIsNone(result.storage)
        self.assertEqual(set(self.storage.config.base_path.iterdir()), before)

    def test_storage_failure_is_upload_error(self) -> None:
        before = len(self.nutrition_storage.list_food_logs(self.user["id"]))

        with mock.patch.object(self.storage, "upload_file", side_effect=OSError("disk full")):
            result = self._run(lambda **_: self._analysis(), meal="SNACK")

        self.assertFalse(result.success)
        self.assertEqual(result.error.code, self.service.UPLOAD_ERROR)
        self.assertEqual(self._temp_files(), [])
        self.assertEqual(len(self.nutrition_storage.list_food_logs(self.user["id"])), before)

    def test_analyzer_crash_is_upload_error(self) -> None:
        def analyzer(**_):
            raise TypeError("unhashable type: 'list'")

        result = self._run(analyzer)

        self.assertFalse(result.success)
        self.assertEqual(result.error.code, self.service.UPLOAD_ERROR)
        self.assertIsNone(result.storage)

    def test_missing_temp_dir_is_not_created_when_disabled(self) -> None:
        from calorielog.storage import StorageService  # noqa: WPS433

        config = self.storage.config.model_copy(
            update={"temp_dir": self._tmp / "no-temp", "create_directories": False}
        )
        storage = StorageService(config)
        storage.initialize()

        result = self.service.handle_upload(
            user_id=self.user["id"],
            image_bytes=JPEG_BYTES,
            filename="pancakes.jpg",
            mime_type="image/jpeg",
            meal_type=self._meal("LUNCH"),
            storage=storage,
            analyzer=lambda **_: self._analysis(),
        )

        self.assertFalse(result.success)
        self.assertEqual(result.error.code, self.service.UPLOAD_ERROR)
        self.assertFalse(config.temp_dir.exists())


class TestUploadApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="calorielog-upload-api-"))
        _setup_env(cls._tmp)

        from calorielog.api import app  # noqa: WPS433 (import inside test for env control)
        from calorielog.food_upload.api import get_analyzer
        from calorielog.food_upload.models import FoodAnalysisError, FoodAnalysisResult
        from calorielog.storage import get_storage_service

        cls.app = app
        cls.get_analyzer = staticmethod(get_analyzer)
        cls.FoodAnalysisError = FoodAnalysisError
        cls.FoodAnalysisResult = FoodAnalysisResult
        cls.storage = get_storage_service()
        cls.client = TestClient(app)

        resp = cls.client.post(
            "/api/auth/register",
            json={"name": "Uploader", "email": "upload@example.com", "password": "Passw0rd!"},
        )
        assert resp.status_code == 201, resp.text

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.client.close()
        except Exception:
            pass
        cls.app.dependency_overrides.clear()
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def tearDown(self) -> None:
        self.app.dependency_overrides.clear()

    def _use_analyzer(self, outcome) -> None:
        self.app.dependency_overrides[self.get_analyzer] = lambda: (lambda **_: outcome)

    def _upload(self, name: str = "soup.jpg", data: bytes = JPEG_BYTES, mime: str = "image/jpeg", meal: str = "DINNER"):
        return self.client.post(
            "/api/food-upload/upload",
            files={"file": (name, data, mime)},
            data={"meal_type": meal},
        )

    def test_upload_requires_auth(self) -> None:
        unauth = TestClient(self.app)
        resp = unauth.post(
            "/api/food-upload/upload",
            files={"file": ("soup.jpg", JPEG_BYTES, "image/jpeg")},
            data={"meal_type": "DINNER"},
        )
        self.assertEqual(resp.status_code, 401)
        unauth.close()

    def test_upload_serve_and_delete(self) -> None:
        self._use_analyzer(
            self.FoodAnalysisResult(
                name="Tomato soup",
                ingredients=["tomato", "cream"],
                portion=300,
                nutrition={"calories": 210, "protein": 4, "carbs": 20, "fat": 12},
            )
        )

        resp = self._upload()
        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["analysis"]["name"], "Tomato soup")
        file_id = body["storage"]["file_id"]
        url = body["storage"]["url"]
        self.assertEqual(url, f"http://testserver/uploads/{file_id}.jpg")

        served = self.client.get(f"/uploads/{file_id}.jpg")
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.content, JPEG_BYTES)

        log = self.client.get(f"/api/nutrition/food-logs/{body['food_log_id']}")
        self.assertEqual(log.status_code, 200)
        self.assertEqual(log.json()["meal_type"], "DINNER")
        self.assertEqual(log.json()["image_url"], url)

        resp = self.client.delete(f"/api/nutrition/food-logs/{body['food_log_id']}")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(self.storage.file_exists(file_id))

    def test_disallowed_type_is_400(self) -> None:
        self._use_analyzer(self.FoodAnalysisError(code="API_ERROR", message="should not be called"))

        resp = self._upload(name="notes.txt", data=b"hello", mime="text/plain")

        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"]["code"], "FILE_TYPE_NOT_ALLOWED")

    def test_too_large_is_400(self) -> None:
        self._use_analyzer(self.FoodAnalysisError(code="API_ERROR", message="should not be called"))

        resp = self._upload(data=b"0" * (self.storage.config.max_file_size + 10))

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "FILE_TOO_LARGE")

    def test_analysis_failure_is_502(self) -> None:
        self._use_analyzer(self.FoodAnalysisError(code="NO_ANALYSIS", message="Could not analyze the image"))

        resp = self._upload()

        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["error"]["code"], "NO_ANALYSIS")

    def test_invalid_meal_type(self) -> None:
        resp = self._upload(meal="BRUNCH")
        self.assertEqual(resp.status_code, 422)

    def test_empty_file(self) -> None:
        resp = self._upload(data=b"")
        self.assertEqual(resp.status_code, 400)


class TestDirectoryCreationDisabled(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="calorielog-nodirs-"))
        _setup_env(cls._tmp)
        os.environ["STORAGE_CREATE_DIRECTORIES"] = "0"

        from calorielog.api import app  # noqa: WPS433 (import inside test for env control)
        from calorielog.config import settings

        cls.settings = settings
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            cls.client.close()
        except Exception:
            pass
        os.environ.pop("STORAGE_CREATE_DIRECTORIES", None)
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def test_app_leaves_storage_dirs_alone(self) -> None:
        self.assertFalse(self.settings.storage_create_directories)
        self.assertEqual(self.client.get("/api/health").status_code, 200)
        self.assertFalse(self.settings.storage_base_path.exists())
        self.assertFalse(self.settings.storage_temp_dir.exists())


if __name__ == "__main__":
    unittest.main()
