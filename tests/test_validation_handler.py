def test_empty_ingredients_and_zero_servings_are_reported_per_field(client):
    response = client.post("/recipes/generate", json={"ingredients": [], "servings": 0})

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "validation_error"
    assert body["path"] == "/recipes/generate"
    assert body["message"] == "2 invalid field(s) in request to /recipes/generate."
    by_field = {d["field"]: d for d in body["details"]}
    assert by_field["ingredients"]["source"] == "body"
    assert by_field["servings"]["source"] == "body"
    assert by_field["servings"]["message"]


def test_unknown_dietary_restriction_is_rejected(client):
    response = client.post(
        "/recipes/generate",
        json={"ingredients": ["tofu"], "dietary_restrictions": ["Carnivore"]},
    )

    assert response.status_code == 422
    fields = {d["field"] for d in response.json()["details"]}
    assert any(field.startswith("dietary_restrictions") for field in fields)


def test_scale_request_reports_missing_servings(client):
    response = client.post("/recipes/scale", json={"ingredients_text": "2 cups flour"})

    assert response.status_code == 422
    body = response.json()
    assert body["path"] == "/recipes/scale"
    assert {d["source"] for d in body["details"]} == {"body"}
