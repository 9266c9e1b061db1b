import unittest

import bcrypt

from dump_anon.common.errors import HashingError
from dump_anon.masking.template_value import TemplateValue, hash_value

TEST_HASH_COST = 4


class TemplateValueUnitTest(unittest.TestCase):
    def test_first(self):
        value = TemplateValue("alice@example.com")
        self.assertEqual(value.first(3), "ali")
        self.assertEqual(value.first(0), "")
        self.assertEqual(value.first(100), "alice@example.com")
        self.assertEqual(value.first(len(value)), "alice@example.com")

    def test_last(self):
        value = TemplateValue("5551234")
        self.assertEqual(value.last(4), "1234")
        self.assertEqual(value.last(0), "")
        self.assertEqual(value.last(100), "5551234")

    def test_lengths_are_counted_in_characters(self):
        value = TemplateValue("Grüße, 世界")
        self.assertEqual(value.first(4), "Grüß")
        self.assertEqual(value.last(2), "世界")

    def test_negative_length_is_rejected(self):
        with self.assertRaises(ValueError):
            TemplateValue("abc").first(-1)
        with self.assertRaises(ValueError):
            TemplateValue("abc").last(-1)

    def test_first_and_last_are_deterministic(self):
        self.assertEqual(TemplateValue("secret").first(2), TemplateValue("secret").first(2))
        self.assertEqual(TemplateValue("secret").last(2), TemplateValue("secret").last(2))

    def test_renders_as_original_value(self):
        value = TemplateValue("alice", hash_cost=TEST_HASH_COST)
        self.assertEqual(str(value), "alice")
        self.assertEqual(value.upper(), "ALICE")

    def test_hashed_is_salted_and_verifiable(self):
        value = TemplateValue("s3cr3t", hash_cost=TEST_HASH_COST)
        first_hash = value.hashed()
        second_hash = value.hashed()

        self.assertNotEqual(first_hash, second_hash)
        self.assertTrue(first_hash.startswith("$2b$04$"))
        self.assertTrue(bcrypt.checkpw(b"s3cr3t", first_hash.encode()))
        self.assertTrue(bcrypt.checkpw(b"s3cr3t", second_hash.encode()))
        self.assertFalse(bcrypt.checkpw(b"other", first_hash.encode()))

    def test_hash_value_rejects_too_long_values(self):
        with self.assertRaises(HashingError):
            hash_value("x" * 73, cost=TEST_HASH_COST)

    def test_hash_value_rejects_invalid_cost(self):
        with self.assertRaises(HashingError):
            hash_value("secret", cost=2)
