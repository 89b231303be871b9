"""
Tests for the comparison endpoints.

Tests verify:
- Attribute listing and creation
- Setting attribute values
- Building comparisons
- CSV and PDF exports
- Error body format for validation failures
"""
import csv
import io
import re

from bs4 import BeautifulSoup

from aws_catalog.errors import PdfRenderTimeoutError
from aws_catalog.main import app, get_pdf_backend


class TestAttributesEndpoints:
    """Tests for /comparison/attributes."""

    def test_list_attributes(self, client, catalog):
        """All attributes are listed with a count."""
        response = client.get("/comparison/attributes")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 8
        assert all(item["isDefault"] for item in body["data"])
        assert body["data"][0]["valueCount"] == 0

    def test_create_attribute(self, client):
        """New attributes are created with 201."""
        response = client.post(
            "/comparison/attributes",
            json={"name": "Free tier", "dataType": "BOOLEAN", "description": "12 months"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Free tier"
        assert data["dataType"] == "BOOLEAN"
        assert data["isDefault"] is False

    def test_invalid_data_type(self, client):
        """Unknown data types return 400 INVALID_DATA_TYPE."""
        response = client.post("/comparison/attributes", json={"name": "Launched", "dataType": "DATE"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_DATA_TYPE"
        assert error["details"]["validTypes"] == ["TEXT", "NUMBER", "BOOLEAN", "URL"]

    def test_duplicate_name(self, client, catalog):
        """Existing names return 409 DUPLICATE_ATTRIBUTE_NAME."""
        response = client.post("/comparison/attributes", json={"name": "SLA", "dataType": "TEXT"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE_ATTRIBUTE_NAME"

    def test_malformed_json(self, client):
        """Bodies that are not valid JSON return 400 VALIDATION_ERROR."""
        response = client.post(
            "/comparison/attributes",
            content=b"{name:",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["path"] == "/comparison/attributes"


class TestSetValueEndpoint:
    """Tests for POST /comparison/services/{serviceId}/attributes/{attributeId}."""

    def test_set_value(self, client, catalog):
        """The stored value is returned decoded."""
        s3 = catalog["services"]["s3"]
        attribute = client.post(
            "/comparison/attributes", json={"name": "Max object size (TB)", "dataType": "NUMBER"}
        ).json()["data"]

        response = client.post(
            f"/comparison/services/{s3.id}/attributes/{attribute['id']}", json={"value": "5"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["value"] == 5.0
        assert data["service"]["name"] == "Amazon S3"

    def test_boolean_false_string(self, client, catalog):
        """The string "false" is stored as False."""
        ec2 = catalog["services"]["ec2"]
        attribute = client.post(
            "/comparison/attributes", json={"name": "Serverless", "dataType": "BOOLEAN"}
        ).json()["data"]

        response = client.post(
            f"/comparison/services/{ec2.id}/attributes/{attribute['id']}", json={"value": "false"}
        )

        assert response.json()["data"]["value"] is False

    def test_invalid_value(self, client, catalog):
        """Values not fitting the data type return 400 INVALID_VALUE_FORMAT."""
        rds = catalog["services"]["rds"]
        attribute = client.post(
            "/comparison/attributes", json={"name": "Docs", "dataType": "URL"}
        ).json()["data"]

        response = client.post(
            f"/comparison/services/{rds.id}/attributes/{attribute['id']}", json={"value": "docs page"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "INVALID_VALUE_FORMAT",
            "message": "データ型 URL に対して無効な値です。",
            "details": {"dataType": "URL", "value": "docs page"},
        }

    def test_number_too_large(self, client, catalog):
        """Integers beyond the float range return 400 INVALID_VALUE_FORMAT."""
        rds = catalog["services"]["rds"]
        attribute = client.post(
            "/comparison/attributes", json={"name": "Max IOPS", "dataType": "NUMBER"}
        ).json()["data"]

        response = client.post(
            f"/comparison/services/{rds.id}/attributes/{attribute['id']}",
            content="{\"value\": " + "9" * 400 + "}",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_VALUE_FORMAT"

    def test_nan_value(self, client, catalog):
        """A bare NaN in the JSON body returns 400 with the value as text."""
        rds = catalog["services"]["rds"]
        attribute = client.post(
            "/comparison/attributes", json={"name": "Max IOPS", "dataType": "NUMBER"}
        ).json()["data"]

        response = client.post(
            f"/comparison/services/{rds.id}/attributes/{attribute['id']}",
            content='{"value": NaN}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"dataType": "NUMBER", "value": "nan"}

    def test_missing_value_key(self, client, catalog):
        """A body without value returns 400 VALIDATION_ERROR."""
        pricing = catalog["attributes"][0]
        ec2 = catalog["services"]["ec2"]

        response = client.post(f"/comparison/services/{ec2.id}/attributes/{pricing.id}", json={})

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"missingFields": ["value"]}

    def test_explicit_null_is_a_value(self, client, catalog):
        """An explicit null TEXT value is stored as an empty string."""
        pricing = catalog["attributes"][0]
        ec2 = catalog["services"]["ec2"]

        response = client.post(f"/comparison/services/{ec2.id}/attributes/{pricing.id}", json={"value": None})

        assert response.status_code == 200
        assert response.json()["data"]["value"] == ""

    def test_unknown_service_and_attribute(self, client, catalog):
        """Unknown IDs return 404 with the matching code."""
        ec2 = catalog["services"]["ec2"]

        service_missing = client.post("/comparison/services/nope/attributes/nope", json={"value": 1})
        attribute_missing = client.post(f"/comparison/services/{ec2.id}/attributes/nope", json={"value": 1})

        assert service_missing.status_code == 404
        assert service_missing.json()["error"]["code"] == "SERVICE_NOT_FOUND"
        assert attribute_missing.status_code == 404
        assert attribute_missing.json()["error"]["code"] == "ATTRIBUTE_NOT_FOUND"


class TestCompareEndpoint:
    """Tests for POST /comparison/compare."""

    def test_compare(self, client, catalog):
        """The matrix is returned with built-in columns first."""
        services = catalog["services"]

        response = client.post(
            "/comparison/compare", json={"serviceIds": [services["ec2"].id, services["lambda"].id]}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [s["name"] for s in data["services"]] == ["Amazon EC2", "AWS Lambda"]
        assert [a["key"] for a in data["attributes"][:5]] == [
            "name", "description", "category", "memoCount", "relationCount",
        ]
        assert data["metadata"]["serviceCount"] == 2
        assert data["metadata"]["attributeCount"] == 13

    def test_too_many_services(self, client):
        """Six services return 400 TOO_MANY_SERVICES with maximum 5."""
        response = client.post(
            "/comparison/compare", json={"serviceIds": ["s1", "s2", "s3", "s4", "s5", "s6"]}
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "TOO_MANY_SERVICES"
        assert error["details"]["maximum"] == 5

    def test_missing_service_ids(self, client):
        """Bodies without serviceIds return INVALID_SERVICE_IDS."""
        response = client.post("/comparison/compare", json={})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SERVICE_IDS"

    def test_unknown_services(self, client, catalog):
        """Unknown services return 404 with the missing IDs."""
        ec2 = catalog["services"]["ec2"]

        response = client.post("/comparison/compare", json={"serviceIds": [ec2.id, "ghost"]})

        assert response.status_code == 404
        assert response.json()["error"]["details"] == {"missingServiceIds": ["ghost"]}


class TestExportEndpoint:
    """Tests for POST /comparison/export."""

    def test_csv_export(self, client, catalog):
        """CSV exports are attachments with the CSV content type."""
        services = catalog["services"]

        response = client.post(
            "/comparison/export",
            json={"serviceIds": [services["s3"].id, services["rds"].id], "format": "CSV"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/csv; charset=utf-8"
        assert re.fullmatch(
            r'attachment; filename="aws-services-comparison-\d+\.csv"',
            response.headers["content-disposition"],
        )
        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8"))))
        assert rows[0][0] == "サービス名"
        assert [row[0] for row in rows[1:]] == ["Amazon S3", "Amazon RDS"]

    def test_pdf_export(self, client, catalog, pdf_calls):
        """PDF exports render the report HTML through the PDF backend."""
        ec2 = catalog["services"]["ec2"]

        response = client.post("/comparison/export", json={"serviceIds": [ec2.id], "format": "pdf"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"].endswith('.pdf"')
        assert response.content.startswith(b"%PDF")
        soup = BeautifulSoup(pdf_calls[0], "html.parser")
        assert [th.get_text(strip=True) for th in soup.find_all("th")] == ["属性", "Amazon EC2"]

    def test_invalid_format(self, client, catalog):
        """Unsupported formats return 400 INVALID_FORMAT."""
        ec2 = catalog["services"]["ec2"]

        response = client.post("/comparison/export", json={"serviceIds": [ec2.id], "format": "xlsx"})

        assert response.status_code == 400
        assert response.json()["error"]["details"] == {"validFormats": ["csv", "pdf"], "provided": "xlsx"}

    def test_comparison_errors_apply(self, client):
        """Comparison validation errors are reported for exports too."""
        response = client.post(
            "/comparison/export",
            json={"serviceIds": ["a", "b", "c", "d", "e", "f"], "format": "csv"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "TOO_MANY_SERVICES"

    def test_pdf_failure(self, client, catalog):
        """Backend failures return 500 PDF_RENDER_FAILED."""
        async def broken_backend(html):
            raise OSError("chromium not installed")

        app.dependency_overrides[get_pdf_backend] = lambda: broken_backend
        ec2 = catalog["services"]["ec2"]

        response = client.post("/comparison/export", json={"serviceIds": [ec2.id], "format": "pdf"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "PDF_RENDER_FAILED"

    def test_pdf_timeout(self, client, catalog):
        """Render timeouts return 504 PDF_RENDER_TIMEOUT."""
        async def slow_backend(html):
            raise PdfRenderTimeoutError()

        app.dependency_overrides[get_pdf_backend] = lambda: slow_backend
        ec2 = catalog["services"]["ec2"]

        response = client.post("/comparison/export", json={"serviceIds": [ec2.id], "format": "pdf"})

        assert response.status_code == 504
        assert response.json()["error"]["code"] == "PDF_RENDER_TIMEOUT"
