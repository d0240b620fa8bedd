# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for opportunity endpoints.
"""

import pytest


class TestCreateOpportunity:
    """Test POST /api/opportunities."""

    def test_police_creates_opportunity(self, client, police_user, police_headers, opportunity_payload):
        response = client.post('/api/opportunities', json=opportunity_payload, headers=police_headers)
        data = response.get_json()

        assert response.status_code == 201
        assert data["title"] == opportunity_payload["title"]
        assert data["volunteers_needed"] == 5
        assert data["credits_reward"] == 50
        assert data["created_by_id"] == police_user.id
        assert data["is_active"] is True
        assert "edit" in data["_links"]

    def test_numeric_strings_coerced(self, client, police_headers, opportunity_payload):
        opportunity_payload.update({"duration": "2", "volunteersNeeded": "10", "creditsReward": "75"})

        response = client.post('/api/opportunities', json=opportunity_payload, headers=police_headers)

        assert response.status_code == 201
        assert response.get_json()["credits_reward"] == 75

    def test_citizen_rejected_without_row(self, client, storage, citizen_user, citizen_headers, opportunity_payload):
        response = client.post('/api/opportunities', json=opportunity_payload, headers=citizen_headers)

        assert response.status_code == 401
        assert response.get_json()["detail"] == "Unauthorized"
        assert storage.get_opportunities() == []

    def test_anonymous_rejected(self, client, opportunity_payload):
        assert client.post('/api/opportunities', json=opportunity_payload).status_code == 401

    @pytest.mark.parametrize("field,value", [
        ("category", "parking"),
        ("creditsReward", 0),
        ("title", ""),
        ("date", "next tuesday"),
    ])
    def test_invalid_payload(self, client, police_headers, opportunity_payload, field, value):
        opportunity_payload[field] = value

        response = client.post('/api/opportunities', json=opportunity_payload, headers=police_headers)

        assert response.status_code == 400
        assert response.get_json()["detail"] == "Invalid opportunity data"


class TestListOpportunities:
    """Test GET /api/opportunities and /api/opportunities/my."""

    def test_public_listing(self, client, storage, police_user, opportunity, opportunity_data):
        storage.create_opportunity(dict(opportunity_data, is_active=False), police_user.id)

        response = client.get('/api/opportunities')
        data = response.get_json()

        assert response.status_code == 200
        assert data["total"] == 1
        assert data["_embedded"]["opportunities"][0]["id"] == opportunity.id
        assert "apply" not in data["_embedded"]["opportunities"][0]["_links"]

    def test_citizen_sees_apply_link(self, client, opportunity, citizen_headers):
        data = client.get('/api/opportunities', headers=citizen_headers).get_json()

        assert "apply" in data["_embedded"]["opportunities"][0]["_links"]

    def test_category_filter(self, client, storage, police_user, opportunity, opportunity_data):
        storage.create_opportunity(dict(opportunity_data, category="community_events"), police_user.id)

        data = client.get('/api/opportunities?category=community_events').get_json()

        assert data["total"] == 1
        assert data["_embedded"]["opportunities"][0]["category"] == "community_events"

    def test_unknown_category(self, client):
        response = client.get('/api/opportunities?category=parking')

        assert response.status_code == 400

    def test_my_opportunities(self, client, storage, other_police_user, opportunity, opportunity_data, police_headers):
        storage.create_opportunity(opportunity_data, other_police_user.id)

        data = client.get('/api/opportunities/my', headers=police_headers).get_json()

        assert [item["id"] for item in data["_embedded"]["opportunities"]] == [opportunity.id]

    def test_my_opportunities_requires_police(self, client, citizen_headers):
        assert client.get('/api/opportunities/my', headers=citizen_headers).status_code == 401


class TestSingleOpportunity:
    """Test GET and PATCH /api/opportunities/<id>."""

    def test_get(self, client, opportunity):
        response = client.get(f'/api/opportunities/{opportunity.id}')

        assert response.status_code == 200
        assert response.get_json()["id"] == opportunity.id

    def test_get_missing(self, client):
        response = client.get('/api/opportunities/does-not-exist')

        assert response.status_code == 404
        assert response.get_json()["detail"] == "Opportunity not found"

    def test_owner_deactivates(self, client, storage, opportunity, police_headers):
        response = client.patch(
            f'/api/opportunities/{opportunity.id}', json={"isActive": False}, headers=police_headers
        )

        assert response.status_code == 200
        assert response.get_json()["is_active"] is False
        assert storage.get_opportunities() == []

    def test_non_owner_rejected(self, client, storage, opportunity, other_police_user, auth_headers):
        response = client.patch(
            f'/api/opportunities/{opportunity.id}',
            json={"creditsReward": 500},
            headers=auth_headers(other_police_user)
        )

        assert response.status_code == 401
        assert storage.get_opportunity(opportunity.id).credits_reward == 50

    def test_patch_missing(self, client, police_headers):
        response = client.patch('/api/opportunities/nope', json={"isActive": False}, headers=police_headers)

        assert response.status_code == 404

    def test_empty_patch(self, client, opportunity, police_headers):
        response = client.patch(f'/api/opportunities/{opportunity.id}', json={}, headers=police_headers)

        assert response.status_code == 400


class TestOpportunityApplications:
    """Test GET /api/opportunities/<id>/applications."""

    def test_owner_lists_applications(self, client, ledger, citizen_user, opportunity, police_headers):
        application = ledger.apply(citizen_user.id, opportunity.id)

        response = client.get(f'/api/opportunities/{opportunity.id}/applications', headers=police_headers)
        data = response.get_json()

        assert response.status_code == 200
        assert data["total"] == 1
        item = data["_embedded"]["applications"][0]
        assert item["id"] == application.id
        assert {"approved", "rejected"} <= set(item["_links"])

    def test_non_owner_rejected(self, client, opportunity, other_police_user, auth_headers):
        response = client.get(
            f'/api/opportunities/{opportunity.id}/applications', headers=auth_headers(other_police_user)
        )

        assert response.status_code == 401
