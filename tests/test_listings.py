import unittest

from tests.fakes import ApiTestCase, listing_payload


class ListingApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner, self.owner_headers = self.register_verified()
        self.other, self.other_headers = self.register_verified(
            email="mehmet@example.com",
            phone="05334445566",
            firstName="Mehmet",
            province="İstanbul",
            district="Kadıköy",
            neighborhood="Moda",
        )

    def test_create_listing_requires_auth(self):
        response = self.client.post("/api/v1/listings", json=listing_payload())
        self.assertEqual(response.status_code, 401)

    def test_create_and_browse(self):
        listing_id = self.create_listing(self.owner_headers)

        response = self.client.get("/api/v1/listings")
        self.assertEqual(response.status_code, 200)
        listings = response.json()
        self.assertEqual(len(listings), 1)
        listing = listings[0]
        self.assertEqual(listing["id"], listing_id)
        self.assertEqual(listing["status"], "active")
        self.assertEqual(listing["startTime"], "12:00")
        self.assertEqual(listing["endTime"], "13:00")
        self.assertEqual(listing["quantity"], 3)
        # Owner fields are joined in
        self.assertEqual(listing["firstName"], "Ayşe")
        self.assertEqual(listing["phone"], "05321112233")
        self.assertEqual(listing["province"], "Ankara")

    def test_end_time_must_follow_start_time(self):
        for start, end in (("13:00", "12:00"), ("12:00", "12:00"), ("23:00", "01:00")):
            response = self.client.post(
                "/api/v1/listings",
                json=listing_payload(startTime=start, endTime=end),
                headers=self.owner_headers,
            )
            self.assertEqual(response.status_code, 400, (start, end))
            self.assertEqual(response.json()["error"], "End time must be later than start time")

    def test_seconds_are_dropped_before_comparing(self):
        response = self.client.post(
            "/api/v1/listings",
            json=listing_payload(startTime="12:00:10", endTime="12:00:50"),
            headers=self.owner_headers,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "End time must be later than start time")
        self.assertNotIn("food_listings", self.db.tables)

        listing_id = self.create_listing(self.owner_headers, startTime="12:00:59", endTime="12:01:00")
        stored = self.db.tables["food_listings"][listing_id]
        self.assertEqual((stored["start_time"], stored["end_time"]), ("12:00", "12:01"))

    def test_times_with_timezone_rejected(self):
        for start, end in (("12:00Z", "13:00"), ("12:00", "13:00+03:00")):
            response = self.client.post(
                "/api/v1/listings",
                json=listing_payload(startTime=start, endTime=end),
                headers=self.owner_headers,
            )
            self.assertEqual(response.status_code, 400, (start, end))
            self.assertEqual(response.json()["error"], "Times must not include a timezone")

    def test_quantity_must_be_positive_integer(self):
        for quantity in (0, -1, "3"):
            response = self.client.post(
                "/api/v1/listings",
                json=listing_payload(quantity=quantity),
                headers=self.owner_headers,
            )
            self.assertEqual(response.status_code, 400, quantity)

    def test_browse_filters_by_owner_location(self):
        self.create_listing(self.owner_headers, foodName="Ankara tavası")
        self.create_listing(self.other_headers, foodName="Kadıköy böreği")

        response = self.client.get("/api/v1/listings", params={"province": "İstanbul"})
        names = [listing["foodName"] for listing in response.json()]
        self.assertEqual(names, ["Kadıköy böreği"])

        response = self.client.get("/api/v1/listings", params={"province": "Ankara", "district": "Çankaya"})
        names = [listing["foodName"] for listing in response.json()]
        self.assertEqual(names, ["Ankara tavası"])

    def test_browse_is_newest_first_and_paginated(self):
        for index in range(5):
            self.create_listing(self.owner_headers, foodName=f"Yemek {index}")

        first_page = self.client.get("/api/v1/listings", params={"limit": 2}).json()
        second_page = self.client.get("/api/v1/listings", params={"skip": 2, "limit": 2}).json()
        self.assertEqual([l["foodName"] for l in first_page], ["Yemek 4", "Yemek 3"])
        self.assertEqual([l["foodName"] for l in second_page], ["Yemek 2", "Yemek 1"])

        filtered = self.client.get(
            "/api/v1/listings", params={"province": "Ankara", "skip": 4, "limit": 2}
        ).json()
        self.assertEqual([l["foodName"] for l in filtered], ["Yemek 0"])

    def test_limit_is_capped(self):
        response = self.client.get("/api/v1/listings", params={"limit": 101})
        self.assertEqual(response.status_code, 400)

    def test_my_listings_with_status_filter(self):
        active_id = self.create_listing(self.owner_headers)
        completed_id = self.create_listing(self.owner_headers, foodName="Pilav")
        offer_id = self.make_offer(self.other_headers, completed_id)
        self.client.put(f"/api/v1/offers/{offer_id}", json={"status": "accepted"}, headers=self.owner_headers)

        everything = self.client.get("/api/v1/listings/mine", headers=self.owner_headers).json()
        self.assertEqual({l["id"] for l in everything}, {active_id, completed_id})

        completed = self.client.get(
            "/api/v1/listings/mine", params={"status": "completed"}, headers=self.owner_headers
        ).json()
        self.assertEqual([l["id"] for l in completed], [completed_id])
        self.assertEqual(completed[0]["acceptedOfferId"], offer_id)
        self.assertIsNotNone(completed[0]["completedAt"])

        # Completed listings drop out of the public feed
        public = self.client.get("/api/v1/listings").json()
        self.assertEqual([l["id"] for l in public], [active_id])

    def test_delete_listing_removes_its_offers(self):
        listing_id = self.create_listing(self.owner_headers)
        _, third_headers = self.register_verified(email="zeynep@example.com", phone="05347778899")
        self.make_offer(self.other_headers, listing_id)
        self.make_offer(third_headers, listing_id)
        self.assertEqual(len(self.db.tables["exchange_offers"]), 2)

        response = self.client.delete(f"/api/v1/listings/{listing_id}", headers=self.owner_headers)
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.db.tables["exchange_offers"], {})

        listings = self.client.get("/api/v1/listings").json()
        self.assertNotIn(listing_id, [listing["id"] for listing in listings])

    def test_delete_by_non_owner_looks_like_missing_listing(self):
        listing_id = self.create_listing(self.owner_headers)

        response = self.client.delete(f"/api/v1/listings/{listing_id}", headers=self.other_headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Listing not found")
        self.assertIn(listing_id, self.db.tables["food_listings"])

        missing = self.client.delete(
            "/api/v1/listings/6f1c1f4e-2d7a-4d8e-9a8b-0c2f3e4d5a6b", headers=self.owner_headers
        )
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), response.json())

    def test_listing_offers_visible_to_owner_only(self):
        listing_id = self.create_listing(self.owner_headers)
        offer_id = self.make_offer(self.other_headers, listing_id)

        response = self.client.get(f"/api/v1/listings/{listing_id}/offers", headers=self.owner_headers)
        self.assertEqual(response.status_code, 200)
        offers = response.json()
        self.assertEqual([offer["id"] for offer in offers], [offer_id])
        self.assertEqual(offers[0]["firstName"], "Mehmet")
        self.assertEqual(offers[0]["phone"], "05334445566")

        response = self.client.get(f"/api/v1/listings/{listing_id}/offers", headers=self.other_headers)
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
