"""
Checksum conformance vectors.

Each vector pins the canonical string and the MD5 digest the bank computes
for the same body.
"""

import hashlib
import unittest
from collections import OrderedDict
from decimal import Decimal

from axispay import checksum
from axispay.checksum import ValueKind, canonicalize, classify, digest, stringify
from axispay.errors import ChecksumMismatchError


def md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


class TestCanonicalString(unittest.TestCase):

    # CV-01: list of records contributes values only, in field order
    def test_records_values_only(self):
        body = {
            "channelId": "C1",
            "corpCode": "X",
            "beneinsert": [{"beneName": "A", "beneAccNum": "123"}],
            "checksum": "",
        }
        self.assertEqual(canonicalize(body), "C1XA123")
        self.assertEqual(digest(body), md5("C1XA123"))

    # CV-02: no checksum field present; digest is appended as a new field
    def test_balance_body_without_checksum(self):
        body = {"corpAccNum": "309010100067740", "channelId": "C1", "corpCode": "X"}
        self.assertEqual(canonicalize(body), "309010100067740C1X")

        stamped = checksum.with_checksum(body)
        self.assertEqual(list(stamped), ["corpAccNum", "channelId", "corpCode", "checksum"])
        self.assertEqual(stamped["checksum"], md5("309010100067740C1X"))
        self.assertNotIn("checksum", body)

    # CV-03: null contributes the empty string, never "null"
    def test_null_is_empty(self):
        body = {"a": None, "b": "abc", "c": [None, "d"]}
        self.assertEqual(canonicalize(body), "abcd")
        self.assertNotIn("null", canonicalize(body))
        self.assertNotIn("None", canonicalize(body))

    # CV-04: fixed digest vectors
    def test_known_digests(self):
        self.assertEqual(digest({"a": "a", "b": "b", "c": "c"}), "900150983cd24fb0d6963f7d28e17f72")
        self.assertEqual(digest({}), "d41d8cd98f00b204e9800998ecf8427e")
        self.assertEqual(digest({"checksum": "ignored"}), "d41d8cd98f00b204e9800998ecf8427e")

    def test_scalar_list(self):
        self.assertEqual(canonicalize({"x": ["a", "b"], "y": "c"}), "abc")

    def test_empty_list_contributes_nothing(self):
        self.assertEqual(canonicalize({"x": [], "y": "c"}), "c")

    def test_nested_mapping_recurses(self):
        body = {"p": {"q": "a", "r": {"s": "b", "t": ["c", {"u": "d"}]}}, "v": "e"}
        self.assertEqual(canonicalize(body), "abcde")

    def test_records_with_nested_values(self):
        body = {"rows": [{"k": "a", "sub": [{"z": "b"}]}, {"k": "c", "m": {"n": "d"}}]}
        self.assertEqual(canonicalize(body), "abcd")

    def test_nested_checksum_fields_are_values(self):
        # Only the top-level checksum is excluded
        body = {"a": "x", "inner": {"checksum": "y"}, "checksum": "z"}
        self.assertEqual(canonicalize(body), "xy")

    def test_insertion_order_matters(self):
        self.assertEqual(canonicalize({"a": "1", "b": "2"}), "12")
        self.assertEqual(canonicalize({"b": "2", "a": "1"}), "21")
        self.assertEqual(canonicalize(OrderedDict([("b", "2"), ("a", "1")])), "21")

    def test_only_outer_whitespace_is_stripped(self):
        self.assertEqual(canonicalize({"a": "  x ", "b": " y  "}), "x  y")

    def test_determinism(self):
        body = {"a": "1", "rows": [{"b": 2, "c": True}], "d": {"e": None, "f": 1.25}}
        self.assertEqual(canonicalize(body), canonicalize(body))
        self.assertEqual(canonicalize(body), "12true1.25")


class TestStringify(unittest.TestCase):

    def test_booleans_are_lowercase(self):
        self.assertEqual(stringify(True), "true")
        self.assertEqual(stringify(False), "false")

    def test_integers(self):
        self.assertEqual(stringify(0), "0")
        self.assertEqual(stringify(-42), "-42")
        self.assertEqual(stringify(10 ** 20), "100000000000000000000")

    def test_integral_float_drops_fraction(self):
        self.assertEqual(stringify(1.0), "1")
        self.assertEqual(stringify(1500.0), "1500")

    def test_float_positional(self):
        self.assertEqual(stringify(1.5), "1.5")
        self.assertEqual(stringify(1e-7), "0.0000001")
        self.assertEqual(stringify(1e21), "1000000000000000000000")

    def test_decimal_keeps_scale(self):
        self.assertEqual(stringify(Decimal("100.50")), "100.50")
        self.assertEqual(stringify(Decimal("1E+3")), "1000")

    def test_none(self):
        self.assertEqual(stringify(None), "")

    def test_non_finite_rejected(self):
        with self.assertRaises(ValueError):
            stringify(float("nan"))


class TestClassify(unittest.TestCase):

    def test_kinds(self):
        self.assertIs(classify(None), ValueKind.NULL)
        self.assertIs(classify("s"), ValueKind.SCALAR)
        self.assertIs(classify(True), ValueKind.SCALAR)
        self.assertIs(classify({"a": 1}), ValueKind.MAPPING)
        self.assertIs(classify([{"a": 1}]), ValueKind.RECORDS)
        self.assertIs(classify(["a"]), ValueKind.LIST)
        self.assertIs(classify([]), ValueKind.LIST)

    def test_unsupported_type(self):
        with self.assertRaises(TypeError):
            canonicalize({"a": object()})
        with self.assertRaises(TypeError):
            canonicalize({"a": b"bytes"})

    def test_body_must_be_mapping(self):
        with self.assertRaises(TypeError):
            canonicalize(["a", "b"])


class TestVerify(unittest.TestCase):

    def setUp(self):
        self.body = {
            "channelId": "C1",
            "corpCode": "X",
            "paymentDetails": {"txnAmount": "10.00", "invoiceDetails": [{"no": "I1"}]},
        }

    def test_round_trip(self):
        self.assertTrue(checksum.verify(checksum.with_checksum(self.body)))

    def test_prior_checksum_value_does_not_matter(self):
        expected = digest(self.body)
        for prior in ("", "deadbeef", None, "0" * 32):
            body = dict(self.body, checksum=prior)
            self.assertEqual(digest(body), expected)

    def test_existing_checksum_keeps_position(self):
        body = {"checksum": "", "a": "x"}
        stamped = checksum.with_checksum(body)
        self.assertEqual(list(stamped), ["checksum", "a"])
        self.assertEqual(stamped["checksum"], md5("x"))

    def test_uppercase_stored_value_verifies(self):
        stamped = checksum.with_checksum(self.body)
        stamped["checksum"] = stamped["checksum"].upper()
        self.assertTrue(checksum.verify_checksum(stamped))

    def test_missing_or_empty_never_verifies(self):
        self.assertFalse(checksum.verify(self.body))
        self.assertFalse(checksum.verify(dict(self.body, checksum="")))
        self.assertFalse(checksum.verify({}))

    def test_tampered_value_fails(self):
        stamped = checksum.with_checksum(self.body)
        stamped["paymentDetails"] = dict(stamped["paymentDetails"], txnAmount="1000.00")
        self.assertFalse(checksum.verify(stamped))

    def test_require_valid_checksum(self):
        checksum.require_valid_checksum(checksum.with_checksum(self.body))
        with self.assertRaises(ChecksumMismatchError):
            checksum.require_valid_checksum(dict(self.body, checksum="0" * 32))

    def test_aliases(self):
        self.assertIs(checksum.checksum, checksum.digest)
        self.assertIs(checksum.verify_checksum, checksum.verify)


if __name__ == "__main__":
    unittest.main()
