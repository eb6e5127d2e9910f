import unittest

from offline_cache.cache.codec import Base64TextCodec, ZlibBase64Codec, get_codec


class PayloadCodecTests(unittest.TestCase):
    samples = ("", "hello", "<html>héllo wörld</html>", "日本語テキスト", "emoji 🎉 and\nnewlines\t")

    def test_round_trip(self) -> None:
        for codec in (Base64TextCodec(), ZlibBase64Codec()):
            for text in self.samples:
                self.assertEqual(codec.decode(codec.encode(text)), text, codec.name)

    def test_base64_output_is_ascii(self) -> None:
        encoded = Base64TextCodec().encode("日本語")
        self.assertEqual(encoded, encoded.encode("ascii").decode("ascii"))

    def test_decode_failure_returns_input(self) -> None:
        for codec in (Base64TextCodec(), ZlibBase64Codec()):
            self.assertEqual(codec.decode("not base64 !!"), "not base64 !!")
        # Valid base64 that is not valid UTF-8.
        self.assertEqual(Base64TextCodec().decode("//79"), "//79")
        # Valid base64 that is not zlib data.
        self.assertEqual(ZlibBase64Codec().decode("aGVsbG8="), "aGVsbG8=")

    def test_zlib_codec_shrinks_repetitive_text(self) -> None:
        text = "abc" * 1000
        self.assertLess(len(ZlibBase64Codec().encode(text)), len(text))

    def test_get_codec(self) -> None:
        self.assertEqual(get_codec("base64").name, "base64")
        self.assertEqual(get_codec("zlib+base64").name, "zlib+base64")
        with self.assertRaises(ValueError):
            get_codec("gzip")


if __name__ == "__main__":
    unittest.main()
