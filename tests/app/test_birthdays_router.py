"""Tests for the birthday CRUD endpoints."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

_MOD = "birthdays.app.routers.birthdays"

NEW_BIRTHDAY = {
    "tenant_id": "tenant_1",
    "first_name": "Dana",
    "last_name": "Levi",
    "birth_date_gregorian": "1990-05-15",
    "is_synced": True,
}


@patch(f"{_MOD}.get_birthdays_for_tenant")
def test_list_birthdays(mock_list: MagicMock, client: TestClient, birthday_factory):
    mock_list.return_value = [birthday_factory.make(), birthday_factory.make({"id": "bday_2"})]

    response = client.get("/birthdays/", params={"tenant_id": "tenant_1"})

    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == ["bday_1", "bday_2"]
    mock_list.assert_called_once_with("tenant_1")


class TestCreateBirthday:
    @patch(f"{_MOD}.create_birthday")
    def test_runs_write_handler(
        self, mock_create: MagicMock, client: TestClient, services: MagicMock, birthday_factory
    ):
        created = birthday_factory.make({"future_hebrew_birthdays": []})
        stored = birthday_factory.make()
        mock_create.return_value = created
        services.write_handler.on_write.return_value = stored

        response = client.post("/birthdays/", json=NEW_BIRTHDAY)

        assert response.status_code == 201
        assert response.json()["hebrew_month"] == "Iyyar"
        services.write_handler.on_write.assert_awaited_once_with("bday_1", None, created)

    def test_validates_body(self, client: TestClient):
        response = client.post("/birthdays/", json={"tenant_id": "tenant_1"})
        assert response.status_code == 422


class TestReadBirthday:
    @patch(f"{_MOD}.get_birthday")
    def test_found(self, mock_get: MagicMock, client: TestClient, birthday_factory):
        mock_get.return_value = birthday_factory.make()
        response = client.get("/birthdays/bday_1")
        assert response.status_code == 200
        assert response.json()["first_name"] == "Dana"

    @patch(f"{_MOD}.get_birthday", return_value=None)
    def test_not_found(self, _mock: MagicMock, client: TestClient):
        assert client.get("/birthdays/bday_1").status_code == 404


class TestEditBirthday:
    @patch(f"{_MOD}.update_birthday")
    @patch(f"{_MOD}.get_birthday")
    def test_passes_before_and_after(
        self,
        mock_get: MagicMock,
        mock_update: MagicMock,
        client: TestClient,
        services: MagicMock,
        birthday_factory,
    ):
        before = birthday_factory.make()
        after = birthday_factory.make({"notes": "Loves jazz"})
        mock_get.side_effect = [before, after]

        response = client.put("/birthdays/bday_1", json={**NEW_BIRTHDAY, "notes": "Loves jazz"})

        assert response.status_code == 200
        assert response.json()["notes"] == "Loves jazz"
        assert mock_update.call_args[0][0] == "bday_1"
        services.write_handler.on_write.assert_awaited_once_with("bday_1", before, after)

    @patch(f"{_MOD}.update_birthday")
    @patch(f"{_MOD}.get_birthday")
    def test_rejects_tenant_change(
        self, mock_get: MagicMock, mock_update: MagicMock, client: TestClient, birthday_factory
    ):
        mock_get.return_value = birthday_factory.make()

        response = client.put("/birthdays/bday_1", json={**NEW_BIRTHDAY, "tenant_id": "tenant_2"})

        assert response.status_code == 400
        mock_update.assert_not_called()

    @patch(f"{_MOD}.get_birthday", return_value=None)
    def test_not_found(self, _mock: MagicMock, client: TestClient):
        assert client.put("/birthdays/bday_1", json=NEW_BIRTHDAY).status_code == 404


class TestDeleteBirthday:
    @patch(f"{_MOD}.delete_birthday")
    @patch(f"{_MOD}.get_birthday")
    def test_removes_events_before_deleting_record(
        self,
        mock_get: MagicMock,
        mock_delete: MagicMock,
        client: TestClient,
        services: MagicMock,
        birthday_factory,
    ):
        before = birthday_factory.make()
        mock_get.return_value = before
        order = []
        services.write_handler.on_write.side_effect = lambda *args: order.append("remove_events")
        mock_delete.side_effect = lambda birthday_id: order.append("delete_record") or True

        response = client.delete("/birthdays/bday_1")

        assert response.status_code == 204
        assert order == ["remove_events", "delete_record"]
        services.write_handler.on_write.assert_awaited_once_with("bday_1", before, None)
        mock_delete.assert_called_once_with("bday_1")

    @patch(f"{_MOD}.delete_birthday", return_value=False)
    @patch(f"{_MOD}.get_birthday")
    def test_record_gone_before_delete(
        self,
        mock_get: MagicMock,
        _mock_delete: MagicMock,
        client: TestClient,
        birthday_factory,
    ):
        mock_get.return_value = birthday_factory.make()
        assert client.delete("/birthdays/bday_1").status_code == 404

    @patch(f"{_MOD}.delete_birthday")
    @patch(f"{_MOD}.get_birthday", return_value=None)
    def test_not_found(
        self, _mock_get: MagicMock, mock_delete: MagicMock, client: TestClient, services: MagicMock
    ):
        assert client.delete("/birthdays/bday_1").status_code == 404
        mock_delete.assert_not_called()
        services.write_handler.on_write.assert_not_awaited()
