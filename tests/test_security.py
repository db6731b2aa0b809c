import unittest


from session_auth.security import (
    hash_password,
    hash_refresh_id,
    new_correlation_id,
    verify_password,
)


class TestPasswordHashing(unittest.TestCase):
    def test_hash_is_salted_and_verifies(self):
        first = hash_password("correct horse")
        second = hash_password("correct horse")

        self.assertNotEqual(first, second)
        self.assertNotIn("correct horse", first)
        self.assertTrue(verify_password("correct horse", first))
        self.assertTrue(verify_password("correct horse", second))

    def test_wrong_candidate_is_rejected(self):
        digest = hash_password("correct horse")
        self.assertFalse(verify_password("battery staple", digest))

    def test_malformed_digest_returns_false(self):
        for digest in ("", None, "not-a-bcrypt-hash", "$2b$12$tooshort"):
            self.assertFalse(verify_password("anything", digest))


class TestRefreshIdHashing(unittest.TestCase):
    def test_hash_is_deterministic_and_hides_input(self):
        correlation_id = new_correlation_id()
        digest = hash_refresh_id(correlation_id)

        self.assertEqual(digest, hash_refresh_id(correlation_id))
        self.assertEqual(len(digest), 64)
        self.assertNotIn(correlation_id, digest)

    def test_correlation_ids_are_unique(self):
        ids = {new_correlation_id() for _ in range(100)}
        self.assertEqual(len(ids), 100)


if __name__ == "__main__":
    unittest.main()
