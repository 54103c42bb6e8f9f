import json
import uuid
import pytest
from concurrent.futures import ThreadPoolExecutor
from app import create_app
from receipts import ReceiptStore

valid_receipts = {
    json.dumps({
        "retailer": "Target",
        "purchaseDate": "2022-01-01",
        "purchaseTime": "13:01",
        "items": [
            {
                "shortDescription": "Mountain Dew 12PK",
                "price": "6.49"
            }, {
                "shortDescription": "Emils Cheese Pizza",
                "price": "12.25"
            }, {
                "shortDescription": "Knorr Creamy Chicken",
                "price": "1.26"
            }, {
                "shortDescription": "Doritos Nacho Cheese",
                "price": "3.35"
            }, {
                "shortDescription": "   Klarbrunn 12-PK 12 FL OZ  ",
                "price": "12.00"
            }
        ],
        "total": "35.35"
    }): 28,
    json.dumps({
        "retailer": "M&M Corner Market",
        "purchaseDate": "2022-03-20",
        "purchaseTime": "14:33",
        "items": [
            {
                "shortDescription": "Gatorade",
                "price": "2.25"
            }, {
                "shortDescription": "Gatorade",
                "price": "2.25"
            }, {
                "shortDescription": "Gatorade",
                "price": "2.25"
            }, {
                "shortDescription": "Gatorade",
                "price": "2.25"
            }
        ],
        "total": "9.00"
    }): 109,
    json.dumps({
        "retailer": "Walgreens",
        "purchaseDate": "2022-01-02",
        "purchaseTime": "08:13",
        "total": "2.65",
        "items": [
            {"shortDescription": "Pepsi - 12-oz", "price": "1.25"},
            {"shortDescription": "Dasani", "price": "1.40"}
        ]
    }): 15,
    json.dumps({
        "retailer": "Target",
        "purchaseDate": "2022-01-02",
        "purchaseTime": "13:13",
        "total": "1.25",
        "items": [
            {"shortDescription": "Pepsi - 12-oz", "price": "1.25"}
        ]
    }): 31
}

required_receipt_attributes = ["retailer", "total", "items", "purchaseDate", "purchaseTime"]


@pytest.fixture
def store():
    return ReceiptStore()


@pytest.fixture
def app(store):
    return create_app(store, {"DEBUG": True, "TESTING": True})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def simple_receipt_skeleton():
    return {
        "retailer": "Target",
        "purchaseDate": "2022-01-02",
        "purchaseTime": "13:13",
        "total": "1.25",
        "items": [
            {"shortDescription": "Pepsi - 12-oz", "price": "1.25"}
        ]
    }


def post_receipt(client, receipt):
    return client.post('/receipts/process', content_type='application/json', data=json.dumps(receipt))


def assert_rejected(response, problems):
    assert response.status_code == 400
    assert json.loads(response.data) == {"error": "Error: receipt failed validation", "problems": problems}


def test_usage(client):
    res = client.get('/')
    assert res.status_code == 200
    assert "POST /receipts/process" in res.get_data(as_text=True)


def test_process_valid_receipts(client):
    for test_json, expected_points in valid_receipts.items():
        expected = {"points": expected_points}
        process_response = client.post('/receipts/process', content_type='application/json', data=test_json)
        assert process_response.status_code == 200
        receipt_id = json.loads(process_response.data)["id"]
        uuid.UUID(receipt_id)
        get_response = client.get(f'/receipts/{receipt_id}/points')
        assert get_response.status_code == 200
        assert expected == json.loads(get_response.data)


def test_breakdown_matches_points(client):
    for test_json, expected_points in valid_receipts.items():
        process_response = client.post('/receipts/process', content_type='application/json', data=test_json)
        receipt_id = json.loads(process_response.data)["id"]
        res = client.get(f'/receipts/{receipt_id}/breakdown')
        assert res.status_code == 200
        breakdown = json.loads(res.data)["breakdown"]
        assert breakdown[-1] == f"{expected_points} points - total points"
        assert sum(int(line.split(" points - ")[0]) for line in breakdown[:-1]) == expected_points


def test_breakdown_simple_receipt(client, simple_receipt_skeleton):
    receipt_id = json.loads(post_receipt(client, simple_receipt_skeleton).data)["id"]
    res = client.get(f'/receipts/{receipt_id}/breakdown')
    assert json.loads(res.data) == {"breakdown": [
        '6 points - retailer: "Target" has 6 alphanumeric characters',
        '25 points - total is a multiple of 0.25',
        '0 points - 1 items (0 pairs @ 5 points per pair)',
        '31 points - total points',
    ]}


def test_process_receipts_unique_ids(client, simple_receipt_skeleton):
    receipt_ids = []
    for i in range(10):
        process_response = post_receipt(client, simple_receipt_skeleton)
        receipt_ids.append(json.loads(process_response.data)["id"])
    assert len(set(receipt_ids)) == len(receipt_ids)


def test_process_receipts_empty_items_list(client, simple_receipt_skeleton):
    simple_receipt_skeleton["items"] = []
    simple_receipt_skeleton["total"] = "0.00"
    process_response = post_receipt(client, simple_receipt_skeleton)
    assert process_response.status_code == 200
    receipt_id = json.loads(process_response.data)["id"]
    # 6 for the retailer, 75 for a round total
    assert json.loads(client.get(f'/receipts/{receipt_id}/points').data) == {"points": 81}


def test_process_receipts_invalid_retailer_name(client, simple_receipt_skeleton):
    invalid_names = ["   ", "", "&&&", " - !"]
    for name in invalid_names:
        simple_receipt_skeleton["retailer"] = name
        assert_rejected(post_receipt(client, simple_receipt_skeleton), ["Retailer is empty"])


def test_process_receipts_invalid_purchase_date(client, simple_receipt_skeleton):
    invalid_dates = ["test", "0000-01-01", "2023-15-15", "2023-10-99", "dummydummydummy", "", '9999-99-99',
                     "2022-1-1"]
    for date in invalid_dates:
        simple_receipt_skeleton["purchaseDate"] = date
        assert_rejected(post_receipt(client, simple_receipt_skeleton),
                        ["PurchaseDate is an invalid date. Please use the format YYYY-MM-DD"])


def test_process_receipts_invalid_purchase_time(client, simple_receipt_skeleton):
    invalid_times = ["test", "13:99", "99:13", "99:99", "dummydummydummy", "", '13-13', "9:05"]
    for time in invalid_times:
        simple_receipt_skeleton["purchaseTime"] = time
        assert_rejected(post_receipt(client, simple_receipt_skeleton),
                        ["PurchaseTime is an invalid time. Please use the format HH:MM"])


def test_process_receipts_zero_item_price(client, simple_receipt_skeleton):
    simple_receipt_skeleton["items"].append({"shortDescription": "Gum", "price": "0.00"})
    assert_rejected(post_receipt(client, simple_receipt_skeleton), ["Item is missing or has an invalid price"])


def test_process_receipts_empty_item_description(client, simple_receipt_skeleton):
    simple_receipt_skeleton["items"][0]["shortDescription"] = ""
    assert_rejected(post_receipt(client, simple_receipt_skeleton),
                    ["Item is missing or has an invalid short description"])


def test_process_receipts_total_mismatch(client, simple_receipt_skeleton):
    simple_receipt_skeleton["total"] = "1.30"
    assert_rejected(post_receipt(client, simple_receipt_skeleton),
                    ["Total does not match sum of items. Total from items: 1.25 Total from receipt: 1.30"])


def test_process_receipts_rejected_receipt_not_stored(client, store, simple_receipt_skeleton):
    simple_receipt_skeleton["total"] = "1.30"
    post_receipt(client, simple_receipt_skeleton)
    assert len(store) == 0


def test_process_receipts_invalid_json(client):
    process_response = client.post('/receipts/process', content_type='application/json', data="{not json")
    assert process_response.status_code == 400
    assert json.loads(process_response.data) == {"error": "Error: receipt must be a JSON object"}


def test_process_receipts_missing_attributes(client, simple_receipt_skeleton):
    for attribute in required_receipt_attributes:
        receipt = dict(simple_receipt_skeleton)
        del receipt[attribute]
        process_response = post_receipt(client, receipt)
        assert process_response.status_code == 400
        assert json.loads(process_response.data) == {"error": f"Error: missing {attribute} in receipt"}


def test_process_receipts_invalid_attribute_formats_except_items(client, simple_receipt_skeleton):
    invalid_elements = [None, [], 25, 3.88, {}]
    for attribute in required_receipt_attributes:
        if attribute != "items":
            original = simple_receipt_skeleton[attribute]
            expected = {"error": f"Error: invalid {attribute} format"}
            for elem in invalid_elements:
                simple_receipt_skeleton[attribute] = elem
                process_response = post_receipt(client, simple_receipt_skeleton)
                assert process_response.status_code == 400
                assert json.loads(process_response.data) == expected
            simple_receipt_skeleton[attribute] = original


def test_process_receipts_invalid_items_format(client, simple_receipt_skeleton):
    invalid_elements = [None, 25, 3.88, {}, ""]
    expected = {"error": "Error: invalid receipt items list format"}
    for elem in invalid_elements:
        simple_receipt_skeleton["items"] = elem
        process_response = post_receipt(client, simple_receipt_skeleton)
        assert process_response.status_code == 400
        assert json.loads(process_response.data) == expected


def test_process_receipts_invalid_item_formats(client, simple_receipt_skeleton):
    expected = {"error": "Error: invalid receipt item format"}
    for elem in [None, 25, 3.88, [], ""]:
        simple_receipt_skeleton["items"] = [elem]
        process_response = post_receipt(client, simple_receipt_skeleton)
        assert process_response.status_code == 400
        assert json.loads(process_response.data) == expected
    for attribute in ["shortDescription", "price"]:
        for elem in [None, 25, 3.88, [], {}]:
            item = {"shortDescription": "Pepsi - 12-oz", "price": "1.25"}
            item[attribute] = elem
            simple_receipt_skeleton["items"] = [item]
            process_response = post_receipt(client, simple_receipt_skeleton)
            assert process_response.status_code == 400
            assert json.loads(process_response.data) == expected


def test_process_receipts_invalid_item_price(client, simple_receipt_skeleton):
    invalid_prices = ["test", "", "1.2.3", "NaN"]
    for price in invalid_prices:
        expected = {"error": f"Error: invalid item price ({price})"}
        simple_receipt_skeleton["items"][0]["price"] = price
        process_response = post_receipt(client, simple_receipt_skeleton)
        assert process_response.status_code == 400
        assert json.loads(process_response.data) == expected


def test_process_receipts_invalid_total(client, simple_receipt_skeleton):
    invalid_totals = ["test", "", ".2.2", "-Infinity"]
    for total in invalid_totals:
        expected = {"error": f"Error: invalid receipt total ({total})"}
        simple_receipt_skeleton["total"] = total
        process_response = post_receipt(client, simple_receipt_skeleton)
        assert process_response.status_code == 400
        assert json.loads(process_response.data) == expected


def test_get_points_nonexistent_id(client):
    res = client.get('/receipts/test/points')
    assert res.status_code == 404
    expected = {'error': 'ERROR: receipt id not found (test)'}
    assert json.loads(res.data) == expected


def test_get_breakdown_nonexistent_id(client):
    res = client.get('/receipts/test/breakdown')
    assert res.status_code == 404
    assert json.loads(res.data) == {'error': 'ERROR: receipt id not found (test)'}


def test_get_points_idempotency(client, simple_receipt_skeleton):
    process_response = post_receipt(client, simple_receipt_skeleton)
    receipt_id = json.loads(process_response.data)["id"]
    for i in range(5):
        get_response = client.get(f'/receipts/{receipt_id}/points')
        assert get_response.status_code == 200
        assert json.loads(get_response.data)["points"] == 31


def test_debug_empty(client):
    res = client.get('/debug')
    assert res.status_code == 200
    assert res.get_data(as_text=True) == "No receipts yet"


def test_debug_lists_receipts(client, simple_receipt_skeleton):
    receipt_id = json.loads(post_receipt(client, simple_receipt_skeleton).data)["id"]
    body = client.get('/debug').get_data(as_text=True)
    assert body.splitlines()[0] == receipt_id
    assert body.splitlines()[-1] == "31 points - total points"


def test_process_receipts_concurrency(client, store, simple_receipt_skeleton):
    params = [simple_receipt_skeleton] * 3000

    def test_post(json_param):
        return client.post('/receipts/process', json=json_param).status_code

    with ThreadPoolExecutor(max_workers=50) as pool:
        assert set(pool.map(test_post, params)) == {200}
    assert len(store) == 3000


def test_get_points_concurrency(client, simple_receipt_skeleton):
    process_response = post_receipt(client, simple_receipt_skeleton)
    receipt_id = json.loads(process_response.data)["id"]
    params = [receipt_id] * 3000

    def test_get(id_param):
        return client.get(f'/receipts/{id_param}/points').get_json()["points"]

    with ThreadPoolExecutor(max_workers=50) as pool:
        assert set(pool.map(test_get, params)) == {31}


def test_process_receipts_huge_amounts(client, store, simple_receipt_skeleton):
    simple_receipt_skeleton["total"] = "1E+30"
    process_response = post_receipt(client, simple_receipt_skeleton)
    assert process_response.status_code == 400
    assert json.loads(process_response.data) == {"error": "Error: invalid receipt total (1E+30)"}
    simple_receipt_skeleton["total"] = "1.25"
    simple_receipt_skeleton["items"][0]["price"] = "1E+30"
    process_response = post_receipt(client, simple_receipt_skeleton)
    assert process_response.status_code == 400
    assert json.loads(process_response.data) == {"error": "Error: invalid item price (1E+30)"}
    assert len(store) == 0


def test_process_receipts_year_before_1000(client, simple_receipt_skeleton):
    simple_receipt_skeleton["purchaseDate"] = "0999-01-02"
    assert post_receipt(client, simple_receipt_skeleton).status_code == 200
