class TestHealthEndpoint:
    """Tests for health check endpoint"""

    def test_health_check(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'healthy'
        assert data['models_loaded'] == {'embedding_provider': True}


class TestRootEndpoint:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert 'message' in data
        assert 'docs' in data


class TestMatchThreshold:

    def test_threshold_is_not_exposed(self, client):
        assert client.get("/api/v1/config").status_code == 404
        assert client.post("/api/v1/config", json={"match_threshold": 100.0}).status_code == 404

    def test_distant_face_stays_unknown(self, client, auth):
        client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user1"))
        client.post(
            "/api/v1/enroll_face",
            files=[("files", ("a.jpg", b"alice-1", "image/jpeg"))],
            data={"label": "Alice"},
            headers=auth("user1")
        )
        client.post("/api/v1/config", json={"match_threshold": 100.0})

        response = client.post(
            "/api/v1/recognise_face",
            files={"file": ("probe.jpg", b"bob-1", "image/jpeg")},
            data={"device_id": "AB12CD"}
        )
        assert response.status_code == 200
        assert [m['label'] for m in response.json()['matches']] == ["unknown"]


class TestDeviceBinding:

    def test_requires_login(self, client):
        response = client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"})
        assert response.status_code == 401

    def test_bind_and_conflict(self, client, auth):
        response = client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user1"))
        assert response.status_code == 200
        assert response.json()['message'] == "Successfully updated"

        response = client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user2"))
        assert response.status_code == 409
        assert response.json()['detail'] == "This id is already owned!"

        response = client.get("/api/v1/device_id", headers=auth("user1"))
        assert response.json() == {'success': True, 'device_id': "AB12CD"}

    def test_invalid_length(self, client, auth):
        response = client.post("/api/v1/device_id", json={"new_device_id": "AB1"}, headers=auth("user1"))
        assert response.status_code == 400
        assert response.json()['detail'] == "Device id must be 6 characters!"

    def test_unbound_user_has_no_device(self, client, auth):
        assert client.get("/api/v1/device_id", headers=auth("user1")).status_code == 404


class TestLocationRelay:

    def test_unbound_device_request(self, client):
        response = client.post("/api/v1/request_location", json={"device_id": "AB12CD"})
        assert response.status_code == 404

    def test_missing_device_id(self, client):
        assert client.post("/api/v1/request_location", json={}).status_code == 404

    def test_request_report_handshake(self, client, auth):
        client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user1"))

        assert client.post("/api/v1/request_location", json={"device_id": "AB12CD"}).status_code == 200
        assert client.get("/api/v1/location_request", headers=auth("user1")).json()['requested'] is True

        response = client.post("/api/v1/report_location", json={"lat": 21.03, "lng": 105.85}, headers=auth("user1"))
        assert response.status_code == 200
        report = response.json()['report']
        assert (report['lat'], report['lng']) == (21.03, 105.85)

        assert client.get("/api/v1/location_request", headers=auth("user1")).json()['requested'] is False

        reports = client.get("/api/v1/locations/AB12CD").json()['reports']
        assert reports == [report]

    def test_report_without_device(self, client, auth):
        response = client.post("/api/v1/report_location", json={"lat": 1.0, "lng": 2.0}, headers=auth("user1"))
        assert response.status_code == 404

    def test_reset_location_request(self, client, auth):
        client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user1"))
        client.post("/api/v1/request_location", json={"device_id": "AB12CD"})

        assert client.post("/api/v1/reset_location_request", headers=auth("user1")).status_code == 200
        assert client.get("/api/v1/location_request", headers=auth("user1")).json()['requested'] is False

    def test_locations_limit(self, client, auth):
        client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user1"))
        for lat in (1.0, 2.0, 3.0):
            client.post("/api/v1/report_location", json={"lat": lat, "lng": 0.0}, headers=auth("user1"))

        reports = client.get("/api/v1/locations/AB12CD", params={"limit": 1}).json()['reports']
        assert [r['lat'] for r in reports] == [3.0]


class TestFaceEnrollment:

    def enroll(self, client, auth, label, *images):
        files = [("files", (f"sample{i}.jpg", image, "image/jpeg")) for i, image in enumerate(images)]
        return client.post("/api/v1/enroll_face", files=files, data={"label": label}, headers=auth("user1"))

    def test_enroll_list_delete(self, client, auth):
        response = self.enroll(client, auth, "Alice", b"alice-1", b"empty")
        assert response.status_code == 200
        data = response.json()
        assert data['label'] == "Alice"
        assert data['samples_used'] == 1
        assert data['skipped_samples'] == [1]
        assert data['warnings'] == ["No face detected in sample 1"]

        faces = client.get("/api/v1/faces", headers=auth("user1")).json()['faces']
        assert faces == [{'id': data['id'], 'label': "Alice"}]

        response = client.delete(f"/api/v1/faces/{data['id']}", headers=auth("user1"))
        assert response.status_code == 200
        assert client.get("/api/v1/faces", headers=auth("user1")).json()['faces'] == []

    def test_enroll_without_face(self, client, auth):
        response = self.enroll(client, auth, "Alice", b"empty")
        assert response.status_code == 400

    def test_enroll_without_label(self, client, auth):
        files = [("files", ("sample.jpg", b"alice-1", "image/jpeg"))]
        response = client.post("/api/v1/enroll_face", files=files, headers=auth("user1"))
        assert response.status_code == 400

    def test_enroll_provider_failure(self, client, auth):
        response = self.enroll(client, auth, "Alice", b"boom")
        assert response.status_code == 500

    def test_delete_without_record(self, client, auth):
        response = client.delete("/api/v1/faces/abc", headers=auth("user1"))
        assert response.status_code == 404


class TestFaceRecognition:

    def recognise(self, client, image, device_id="AB12CD"):
        data = {"device_id": device_id} if device_id else {}
        return client.post(
            "/api/v1/recognise_face",
            files={"file": ("probe.jpg", image, "image/jpeg")},
            data=data
        )

    def test_unbound_device(self, client):
        assert self.recognise(client, b"alice-1").status_code == 404

    def test_no_enrolled_faces(self, client, auth):
        client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user1"))
        assert self.recognise(client, b"alice-1").status_code == 401

    def test_recognise_and_cache(self, client, auth):
        client.post("/api/v1/device_id", json={"new_device_id": "AB12CD"}, headers=auth("user1"))
        client.post(
            "/api/v1/enroll_face",
            files=[("files", ("a.jpg", b"alice-1", "image/jpeg"))],
            data={"label": "Alice"},
            headers=auth("user1")
        )

        response = self.recognise(client, b"crowd")
        assert response.status_code == 200
        data = response.json()
        assert data['faces_detected'] == 2
        assert [m['label'] for m in data['matches']] == ["Alice", "unknown"]

        cached = client.get("/api/v1/detected_faces", headers=auth("user1")).json()
        assert cached['detected_faces'] == ["Alice", "unknown"]

        assert client.post("/api/v1/reset_detected_faces", headers=auth("user1")).status_code == 200
        cached = client.get("/api/v1/detected_faces", headers=auth("user1")).json()
        assert cached['detected_faces'] == []

    def test_missing_file(self, client):
        response = client.post("/api/v1/recognise_face", data={"device_id": "AB12CD"})
        assert response.status_code == 422
