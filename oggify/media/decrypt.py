"""
Decrypts audio files delivered by the remote service.
"""

from Crypto.Cipher import AES

from oggify.exceptions import LocalIOError

# Fixed initial counter block used for every audio file
AUDIO_AES_IV = bytes.fromhex("72e067fbddcbcf77ebe8bc643f630d93")
AUDIO_KEY_SIZE = 16


def decrypt_audio(key: bytes, ciphertext: bytes) -> bytes:
    """
    Decrypts a complete audio file with AES-128 in CTR mode.

    Raises:
        LocalIOError: If the key is malformed.
    """
    if len(key) != AUDIO_KEY_SIZE:
        raise LocalIOError(
            f"Audio key must be {AUDIO_KEY_SIZE} bytes, got {len(key)}"
        )
    try:
        cipher = AES.new(key, AES.MODE_CTR, nonce=b"", initial_value=AUDIO_AES_IV)
        return cipher.decrypt(ciphertext)
    except (ValueError, TypeError) as e:
        raise LocalIOError(f"Failed to decrypt file: {e}") from e
