"""
Unit tests for the catalog sync Lambda handler.
"""

import json
from unittest.mock import MagicMock, patch

from catalog_builder.document import new_document
from catalog_builder.storage.documents import SaveAck
from catalog_builder.storage.errors import GatewayError
from catalog_builder.storage.spaces import FolderResult
from catalog_builder.sync_handler import lambda_handler


def _document():
    document = new_document()
    steps = document["stepperForm"]["steps"]
    steps[0]["categories"] = ["Shelter"]
    steps[1]["ranges"] = {"Shelter": ["Peninsula"]}
    steps[2]["products"] = {"Peninsula": ["K301"]}
    steps[3]["productDetails"] = {
        "K301": {
            "name": "Peninsula 3m",
            "overview": "",
            "description": "",
            "specifications": [],
            "imageGallery": [],
            "files": {},
        }
    }
    return document


def _run(event, folders=None, document=None):
    """Invoke the handler with mocked config, document store and gateway."""
    document_store = MagicMock()
    document_store.load.return_value = document or _document()
    document_store.save.return_value = SaveAck(success=True, location="s3://test-bucket/doc.json")

    gateway = MagicMock()
    gateway.list_all_folders.return_value = list(folders or [])
    gateway.create_folder.side_effect = lambda path: FolderResult(path=path, success=True, created=True)

    with patch("catalog_builder.sync_handler.Config") as mock_config, patch(
        "catalog_builder.sync_handler.get_document_store", return_value=document_store
    ), patch("catalog_builder.sync_handler.SpacesGateway", return_value=gateway):
        response = lambda_handler(event, None)
        mock_config.validate.assert_called_once()

    return response, json.loads(response["body"]), document_store, gateway


class TestLambdaHandler:
    """Test action dispatch, persistence and error boundaries."""

    def test_status_reports_comparison(self):
        response, body, document_store, _ = _run({"action": "status"}, ["shelter", "Canopy"])

        assert response["statusCode"] == 200
        groups = {item["name"]: item["status"] for item in body["report"]["groups"]}
        assert groups == {"Shelter": "synced", "Canopy": "remote_only"}
        assert body["saved"] is False
        document_store.save.assert_not_called()

    def test_push_selected_paths(self):
        response, body, document_store, gateway = _run(
            {"action": "push", "paths": ["shelter/peninsula"]}, ["Shelter"]
        )

        assert response["statusCode"] == 200
        assert body["result"]["success_count"] == 1
        gateway.create_folder.assert_called_once_with("Shelter/Peninsula")
        document_store.save.assert_not_called()

    def test_import_saves_changed_document(self):
        response, body, document_store, _ = _run(
            {"action": "import"}, ["Shelter", "Shelter/Peninsula", "Shelter/Peninsula/K301", "Canopy/Harbour/H1"]
        )

        assert response["statusCode"] == 200
        assert body["result"]["success_count"] == 1
        assert body["saved"] is True
        saved = document_store.save.call_args[0][0]
        steps = saved["stepperForm"]["steps"]
        assert steps[0]["categories"] == ["Shelter", "Canopy"]
        assert steps[2]["products"]["Harbour"] == ["H1"]
        assert saved["stepper_data_builder"]["lastSaved"] == body["run_timestamp"]

    def test_import_dry_run_does_not_save(self):
        response, body, document_store, _ = _run(
            {"action": "import", "dry_run": True}, ["Canopy/Harbour"]
        )

        assert response["statusCode"] == 200
        assert [entity["name"] for entity in body["plan"]["create"]] == ["Canopy", "Harbour"]
        document_store.save.assert_not_called()

    def test_provision_creates_asset_folders(self):
        response, body, _, gateway = _run({"action": "provision"})

        assert response["statusCode"] == 200
        assert body["result"]["success_count"] == 2
        created = [call.args[0] for call in gateway.create_folder.call_args_list]
        assert created == ["shelter/peninsula/k301/images", "shelter/peninsula/k301/downloads"]

    def test_unknown_action_is_bad_request(self):
        response = lambda_handler({"action": "delete_everything"}, None)

        assert response["statusCode"] == 400
        assert "Unknown action" in json.loads(response["body"])["error"]

    def test_invalid_paths_is_bad_request(self):
        response, body, _, _ = _run({"action": "push", "paths": "Shelter"})

        assert response["statusCode"] == 400
        assert "paths must be a list" in body["error"]

    def test_document_load_failure_is_server_error(self):
        document_store = MagicMock()
        document_store.load.side_effect = GatewayError("load", "AccessDenied")

        with patch("catalog_builder.sync_handler.Config"), patch(
            "catalog_builder.sync_handler.get_document_store", return_value=document_store
        ), patch("catalog_builder.sync_handler.SpacesGateway"):
            response = lambda_handler({"action": "status"}, None)

        assert response["statusCode"] == 500
        assert json.loads(response["body"])["error"] == "load failed: AccessDenied"

    def test_config_failure_is_server_error(self):
        with patch("catalog_builder.sync_handler.Config") as mock_config:
            mock_config.validate.side_effect = ValueError("Missing required environment variables: SPACES_BUCKET_NAME")
            response = lambda_handler({"action": "status"}, None)

        assert response["statusCode"] == 500
        assert "SPACES_BUCKET_NAME" in json.loads(response["body"])["error"]
