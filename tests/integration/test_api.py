"""Integration tests for the Content Canvas FastAPI application.

Every route is exercised through ``fastapi.testclient.TestClient`` with the
fake generation capability and mock stock transport from ``conftest.py``.

Tests cover:
- GET /api/config — presets, limits and configuration flags.
- Composition mode — template, confirm, crop, stock promote and final.
- Direct mode — batch generation and batch validation.
- Editing — instruction edit, in-paint and out-paint.
- Variations and prompt assistance.
- Stock search, including the unconfigured case.
- History and recent-prompt endpoints.
"""

from fastapi.testclient import TestClient
from PIL import Image

from contentcanvas.api.main import create_app
from contentcanvas.core.images import decode_image
from contentcanvas.core.masks import MAX_OUTPAINT_PADDING
from contentcanvas.core.presets import DEFAULT_NEGATIVE_PROMPT, PROMPT_TEMPLATES
from contentcanvas.core.recency import RecencyStore
from contentcanvas.stock.aggregator import ProviderAggregator


class TestConfigEndpoint:
    """Test the /api/config endpoint."""

    def test_returns_presets_and_limits(self, test_client, test_config):
        response = test_client.get("/api/config")
        assert response.status_code == 200

        data = response.json()
        assert data["aspect_ratios"] == ["1:1", "16:9", "4:3", "3:4", "9:16"]
        assert data["prompt_templates"] == PROMPT_TEMPLATES
        assert data["default_negative_prompt"] == DEFAULT_NEGATIVE_PROMPT
        assert data["defaults"]["composition_aspect_ratio"] == "16:9"
        assert data["max_batch_size"] == test_config.max_batch_size
        assert data["generation"] == {"name": "Fake", "is_configured": True}
        assert data["generation_configured"] is True
        assert data["stock_configured"] is True

    def test_initial_state_is_idle(self, test_client):
        data = test_client.get("/api/state").json()
        assert {s["status"] for s in data["sessions"].values()} == {"idle"}
        assert data["displayed_template"] is None
        assert data["selected_template"] is None


class TestCompositionFlow:
    """Test the two-stage template then final flow."""

    def test_template_confirm_final(self, test_client, sample_image):
        response = test_client.post(
            "/api/composition/template",
            json={"prompt": "a sunny beach", "negative_prompt": "people", "aspect_ratio": "16:9"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "succeeded"
        assert data["prompt"] == "a sunny beach"
        assert data["displayed_template"] == sample_image
        assert data["selected_template"] is None

        confirmed = test_client.post("/api/composition/confirm").json()
        assert confirmed["selected_template"] == sample_image

        response = test_client.post(
            "/api/composition/final",
            json={"subject_prompt": "a red kite", "aspect_ratio": "16:9"},
        )
        data = response.json()
        assert data["status"] == "succeeded"
        assert data["images"] == [sample_image]

        history = test_client.get("/api/history").json()
        assert history["total"] == 2
        assert [e["kind"] for e in history["entries"]] == ["final", "template"]

    def test_final_without_template_fails_validation(self, test_client):
        response = test_client.post("/api/composition/final", json={"subject_prompt": "a kite"})
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "failed"
        assert data["error"]["category"] == "validation"
        assert data["error"]["retryable"] is False

    def test_confirm_without_template(self, test_client):
        response = test_client.post("/api/composition/confirm")
        assert response.status_code == 400
        assert response.json()["detail"]["category"] == "validation"

    def test_invalid_aspect_ratio_rejected(self, test_client):
        response = test_client.post(
            "/api/composition/template", json={"prompt": "x", "aspect_ratio": "2:1"}
        )
        assert response.status_code == 422

    def test_set_and_crop_displayed(self, test_client, image_factory):
        image = image_factory(size=(10, 10))
        response = test_client.put("/api/composition/displayed", json={"image": image})
        assert response.json()["displayed_template"] == image

        response = test_client.post(
            "/api/composition/crop", json={"x": 2, "y": 2, "width": 5, "height": 4}
        )
        assert response.status_code == 200
        cropped = response.json()["displayed_template"]
        assert decode_image(cropped).size == (5, 4)
        assert response.json()["selected_template"] is None

    def test_crop_of_oversized_image_is_rejected(self, test_client, sample_image, monkeypatch):
        test_client.put("/api/composition/displayed", json={"image": sample_image})
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

        response = test_client.post(
            "/api/composition/crop", json={"x": 0, "y": 0, "width": 2, "height": 2}
        )
        assert response.status_code == 400
        assert response.json()["detail"]["category"] == "validation"

    def test_stock_promote(self, test_client):
        response = test_client.post(
            "/api/composition/stock",
            json={"url": "https://images.pexels.com/p1-l.jpg", "query": "lake", "aspect_ratio": "16:9"},
        )
        assert response.status_code == 200
        displayed = response.json()["displayed_template"]
        assert displayed.startswith("data:image/png;base64,")

        (entry,) = test_client.get("/api/history").json()["entries"]
        assert entry["kind"] == "template"
        assert entry["prompt"] == "Stock image: lake"

    def test_stock_promote_rejects_other_hosts(self, test_client):
        response = test_client.post(
            "/api/composition/stock",
            json={"url": "http://169.254.169.254/latest/meta-data/", "query": "lake"},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["category"] == "validation"
        assert test_client.get("/api/history").json()["total"] == 0
        assert test_client.get("/api/state").json()["displayed_template"] is None


class TestDirectGeneration:
    def test_batch(self, test_client):
        response = test_client.post(
            "/api/direct/generate",
            json={"prompt": "a lighthouse", "aspect_ratio": "3:4", "batch_size": 3},
        )
        data = response.json()
        assert data["status"] == "succeeded"
        assert len(data["images"]) == 3
        assert test_client.get("/api/history").json()["total"] == 3

    def test_batch_too_large(self, test_client, fake_capability):
        response = test_client.post(
            "/api/direct/generate", json={"prompt": "a lighthouse", "batch_size": 99}
        )
        data = response.json()
        assert data["status"] == "failed"
        assert data["error"]["category"] == "validation"
        assert fake_capability.requests == []

    def test_empty_prompt(self, test_client):
        data = test_client.post("/api/direct/generate", json={"prompt": "   "}).json()
        assert data["status"] == "failed"
        assert data["error"]["category"] == "validation"


class TestEditing:
    def test_instruction_edit(self, test_client, sample_image):
        response = test_client.post(
            "/api/edit", json={"image": sample_image, "prompt": "make it night"}
        )
        data = response.json()
        assert data["mode"] == "edit"
        assert data["status"] == "succeeded"
        assert test_client.get("/api/history").json()["total"] == 0

    def test_edit_without_image(self, test_client):
        data = test_client.post("/api/edit", json={"prompt": "make it night"}).json()
        assert data["status"] == "failed"
        assert data["error"]["category"] == "validation"

    def test_inpaint(self, test_client, sample_image, fake_capability):
        response = test_client.post(
            "/api/edit/inpaint",
            json={
                "image": sample_image,
                "prompt": "add a hat",
                "strokes": [{"x": 3, "y": 3, "radius": 2}],
            },
        )
        assert response.json()["status"] == "succeeded"
        assert len(fake_capability.requests[-1].image_inputs) == 2

    def test_outpaint(self, test_client, sample_image, fake_capability):
        response = test_client.post(
            "/api/edit/outpaint",
            json={"image": sample_image, "prompt": "more sky", "top": 4},
        )
        assert response.json()["status"] == "succeeded"
        base = fake_capability.requests[-1].image_inputs[0].image
        assert decode_image(base).size == (8, 10)

    def test_outpaint_negative_margin_rejected(self, test_client, sample_image):
        response = test_client.post(
            "/api/edit/outpaint",
            json={"image": sample_image, "prompt": "more sky", "left": -1},
        )
        assert response.status_code == 422

    def test_outpaint_oversized_margin_rejected(self, test_client, sample_image, fake_capability):
        response = test_client.post(
            "/api/edit/outpaint",
            json={"image": sample_image, "prompt": "more sky", "bottom": MAX_OUTPAINT_PADDING + 1},
        )
        assert response.status_code == 422
        assert fake_capability.requests == []


class TestVariations:
    def test_default_count(self, test_client, sample_image, test_config):
        response = test_client.post("/api/variations", json={"image": sample_image})
        assert response.status_code == 200
        assert len(response.json()["images"]) == test_config.variation_count

    def test_count_out_of_range(self, test_client, sample_image):
        response = test_client.post("/api/variations", json={"image": sample_image, "count": 0})
        assert response.status_code == 400


class TestPromptAssistance:
    def test_enhance(self, test_client, fake_capability):
        response = test_client.post(
            "/api/prompt/enhance", json={"prompt": "a cat", "context": "a desk", "mode": "subject"}
        )
        assert response.json() == {"prompt": "enhanced"}
        assert "a desk" in fake_capability.text_calls[-1]["contents"]

    def test_negative(self, test_client):
        response = test_client.post("/api/prompt/negative", json={"prompt": "a logo"})
        assert response.json() == {"negative_prompt": "enhanced"}


class TestStockSearch:
    def test_only_configured_provider_answers(self, test_client):
        response = test_client.post("/api/stock/search", json={"query": "lake"})
        assert response.status_code == 200

        (result,) = response.json()["results"]
        assert result["id"] == "pexels-1"
        assert result["provider_name"] == "pexels"

    def test_empty_query(self, test_client):
        response = test_client.post("/api/stock/search", json={"query": " "})
        assert response.status_code == 400

    def test_not_configured(self, test_config, fake_capability):
        app = create_app(
            settings=test_config,
            capability=fake_capability,
            store=RecencyStore(),
            aggregator=ProviderAggregator.from_config(test_config),
        )
        with TestClient(app) as client:
            response = client.post("/api/stock/search", json={"query": "lake"})
            assert client.get("/api/config").json()["stock_configured"] is False

        assert response.status_code == 503
        assert response.json()["detail"]["category"] == "invalid_credentials"


class TestHistoryEndpoints:
    def _generate(self, client, prompt):
        client.post("/api/direct/generate", json={"prompt": prompt})

    def test_reuse(self, test_client):
        self._generate(test_client, "a fox")
        entry = test_client.get("/api/history").json()["entries"][0]

        response = test_client.get(f"/api/history/{entry['id']}/reuse")
        assert response.json()["mode"] == "direct"
        assert response.json()["prompt"] == "a fox"

    def test_reuse_missing(self, test_client):
        assert test_client.get("/api/history/12345/reuse").status_code == 404

    def test_delete(self, test_client):
        self._generate(test_client, "a fox")
        self._generate(test_client, "a hare")
        entries = test_client.get("/api/history").json()["entries"]

        response = test_client.delete(f"/api/history/{entries[0]['id']}")
        assert response.json() == {"success": True, "deleted": entries[0]["id"]}

        remaining = test_client.get("/api/history").json()["entries"]
        assert [e["prompt"] for e in remaining] == ["a fox"]

    def test_delete_missing(self, test_client):
        assert test_client.delete("/api/history/12345").status_code == 404

    def test_clear(self, test_client):
        self._generate(test_client, "a fox")
        assert test_client.delete("/api/history").json() == {"success": True}
        assert test_client.get("/api/history").json()["total"] == 0

    def test_recent_prompts(self, test_client):
        self._generate(test_client, "a fox")
        self._generate(test_client, "a hare")
        self._generate(test_client, "a fox")

        data = test_client.get("/api/recent-prompts/direct").json()
        assert data == {"category": "direct", "prompts": ["a fox", "a hare"]}
        assert test_client.get("/api/recent-prompts/template").json()["prompts"] == []

    def test_unknown_category(self, test_client):
        assert test_client.get("/api/recent-prompts/unknown").status_code == 422
