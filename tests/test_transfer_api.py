import pytest


@pytest.fixture
def alice_and_bob(client, register, alice_property):
    register("bob")
    return alice_property["id"]


def _transfer(client, property_id, from_holder, to_holder, shares):
    return client.post(
        f"/transfer/{property_id}",
        json={"from": from_holder, "to": to_holder, "shares": shares},
    )


def test_ownership_follows_majority(client, alice_and_bob):
    first = _transfer(client, alice_and_bob, "alice", "bob", 60)
    assert first.status_code == 200
    assert first.json()["tokenizedShares"] == {"alice": 40, "bob": 60}
    assert first.json()["owner"] == "bob"

    second = _transfer(client, alice_and_bob, "bob", "alice", 30)
    assert second.status_code == 200
    assert second.json()["tokenizedShares"] == {"alice": 70, "bob": 30}
    assert second.json()["owner"] == "alice"

    stored = client.get(f"/properties/{alice_and_bob}").json()
    assert stored["owner"] == "alice"
    assert stored["transactionHistory"] == [
        "Property created by alice",
        "60 transferred from alice to bob",
        "30 transferred from bob to alice",
    ]


def test_tie_keeps_first_holder_as_owner(client, alice_and_bob):
    response = _transfer(client, alice_and_bob, "alice", "bob", 50)

    assert response.json()["tokenizedShares"] == {"alice": 50, "bob": 50}
    assert response.json()["owner"] == "alice"


def test_share_map_order_survives_storage(client, register, alice_and_bob):
    register("carol")
    _transfer(client, alice_and_bob, "alice", "carol", 30)
    _transfer(client, alice_and_bob, "alice", "bob", 30)

    stored = client.get(f"/properties/{alice_and_bob}").json()

    assert list(stored["tokenizedShares"]) == ["alice", "carol", "bob"]
    assert stored["owner"] == "alice"

    # carol and bob now tie at 35; carol was inserted first
    _transfer(client, alice_and_bob, "alice", "carol", 5)
    response = _transfer(client, alice_and_bob, "alice", "bob", 5)
    assert response.json()["tokenizedShares"] == {"alice": 30, "carol": 35, "bob": 35}
    assert response.json()["owner"] == "carol"


def test_total_shares_are_conserved(client, register, alice_and_bob):
    register("carol")
    for from_holder, to_holder, shares in [
        ("alice", "bob", 33),
        ("bob", "carol", 11),
        ("alice", "carol", 20),
        ("carol", "alice", 7),
    ]:
        response = _transfer(client, alice_and_bob, from_holder, to_holder, shares)
        assert response.status_code == 200
        assert sum(response.json()["tokenizedShares"].values()) == 100


def test_insufficient_shares_leave_property_unchanged(client, alice_and_bob):
    before = client.get(f"/properties/{alice_and_bob}").json()

    response = _transfer(client, alice_and_bob, "alice", "bob", 101)

    assert response.status_code == 400
    assert response.json() == {
        "error": f"alice does not own 101 shares in property {alice_and_bob}"
    }
    assert client.get(f"/properties/{alice_and_bob}").json() == before


def test_sender_without_holding_has_insufficient_shares(client, alice_and_bob):
    response = _transfer(client, alice_and_bob, "bob", "alice", 1)

    assert response.status_code == 400
    assert "does not own" in response.json()["error"]


def test_unregistered_receiver_is_rejected(client, alice_and_bob):
    response = _transfer(client, alice_and_bob, "alice", "ghost", 10)

    assert response.status_code == 400
    assert response.json() == {"error": "ghost does not match any registered users."}
    assert client.get(f"/properties/{alice_and_bob}").json()["tokenizedShares"] == {"alice": 100}


def test_unknown_property(client, register):
    register("alice")
    register("bob")

    response = _transfer(client, "missing", "alice", "bob", 1)

    assert response.status_code == 404


@pytest.mark.parametrize("shares", [0, -1, "ten", 2.5, None])
def test_invalid_share_counts(client, alice_and_bob, shares):
    response = _transfer(client, alice_and_bob, "alice", "bob", shares)

    assert response.status_code == 400
    assert "shares" in response.json()["error"]


def test_missing_fields(client, alice_and_bob):
    response = client.post(f"/transfer/{alice_and_bob}", json={"from": "alice", "shares": 5})

    assert response.status_code == 400
    assert "to" in response.json()["error"]


def test_self_transfer_is_rejected(client, alice_and_bob):
    response = _transfer(client, alice_and_bob, "alice", "alice", 5)

    assert response.status_code == 400
    assert client.get(f"/properties/{alice_and_bob}").json()["transactionHistory"] == [
        "Property created by alice"
    ]
