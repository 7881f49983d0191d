#!/usr/bin/env python3
"""
Python implementation of keccak256 (Ethereum-style, not NIST SHA3-256).

The Keccak sponge over Keccak-f[1600], with the Keccak-256 profile
(rate 1088 bits, capacity 512 bits, suffix 0x01, 32-byte digest) as the
main entry point. Run as a script to hash text, a file, or stdin.
"""

import argparse
import logging
import os
import sys
import time
from dataclasses import dataclass

logger = logging.getLogger("keccak256")

# read at import, checked by main()
LOG_LEVEL = os.getenv("KECCAK256_LOG_LEVEL", "WARNING")
BENCH_ITERATIONS = os.getenv("KECCAK256_BENCH_ITERATIONS", "1234")
DEFAULT_MESSAGE = "Hello, Ethereum!"

# --------------------------------------------------------------------
#                          Constants & Helpers
# --------------------------------------------------------------------

Masks = [(1 << i) - 1 for i in range(65)]


class KeccakConfigError(ValueError):
    """Raised when a sponge parameter set cannot describe Keccak-f[1600]."""


def bits2bytes(x):
    return (x + 7) // 8


def rol(value, left, bits):
    top = value >> (bits - left)
    bot = (value & Masks[bits - left]) << left
    return bot | top


def lfsr86540(register):
    """
    Advance the round-constant LFSR (x^8 + x^6 + x^5 + x^4 + 1) one step.

    Returns the new single-byte register and the output bit, which is
    bit 1 of the new register.
    """
    feedback = 0x71 if register & 0x80 else 0
    register = ((register << 1) ^ feedback) & 0xFF
    return register, (register & 2) >> 1


def round_constants(rounds=24):
    """Derive the iota constants, consuming 7 LFSR bits per round."""
    register = 0x01
    constants = []
    for _ in range(rounds):
        rc = 0
        for j in range(7):
            register, bit = lfsr86540(register)
            if bit:
                rc ^= 1 << ((1 << j) - 1)
        constants.append(rc)
    return constants


def rho_pi_walk():
    """
    Positions visited by the fused rho/pi pass, starting from lane (1, 0).

    Each entry is (x, y, r): the lane written at that step and the
    accumulated rotation applied to the value carried into it. r is left
    unreduced; the permutation takes it mod 64.
    """
    x, y = 1, 0
    r = 0
    steps = []
    for step in range(24):
        r += step + 1
        x, y = y, (2 * x + 3 * y) % 5
        steps.append((x, y, r))
    return steps


def rotation_offsets():
    return [r for _, _, r in rho_pi_walk()]


RoundConstants = round_constants()

# (lane index, rotation) pairs for keccak_f, lanes indexed as x + 5 * y
RhoPiSteps = [(x + 5 * y, r % 64) for x, y, r in rho_pi_walk()]

# --------------------------------------------------------------------
#                          Keccak State
# --------------------------------------------------------------------


def lane_offset(x, y):
    return 8 * (x + 5 * y)


def load_lane(buf, x, y):
    o = lane_offset(x, y)
    return int.from_bytes(buf[o : o + 8], "little")


def store_lane(buf, x, y, lane):
    o = lane_offset(x, y)
    buf[o : o + 8] = lane.to_bytes(8, "little")


def xor_lane(buf, x, y, lane):
    store_lane(buf, x, y, load_lane(buf, x, y) ^ lane)


class KeccakState:
    """
    The 1600-bit Keccak state as a flat 200-byte buffer.

    Lane (x, y) is stored little-endian at byte offset 8 * (x + 5 * y).
    The buffer is never resized.
    """

    W = 5
    H = 5
    rangeW = range(W)
    rangeH = range(H)
    lanew = 64
    b = 1600
    nbytes = b // 8

    def __init__(self):
        self.s = bytearray(self.nbytes)

    def lanes(self):
        return [load_lane(self.s, x, y) for y in self.rangeH for x in self.rangeW]

    def set_lanes(self, lanes):
        assert len(lanes) == self.W * self.H
        i = 0
        for y in self.rangeH:
            for x in self.rangeW:
                store_lane(self.s, x, y, lanes[i])
                i += 1

    def xor_bytes(self, block):
        s = self.s
        full = len(block) // 8
        for i in range(full):
            xor_lane(s, i % self.W, i // self.W, int.from_bytes(block[8 * i : 8 * i + 8], "little"))
        for i in range(8 * full, len(block)):
            s[i] ^= block[i]

    def get_bytes(self):
        return bytes(self.s)

    def set_bytes(self, bb):
        assert len(bb) == self.nbytes
        self.s[:] = bb

    def clear(self):
        self.s[:] = bytes(self.nbytes)


# --------------------------------------------------------------------
#                          Keccak Permutation
# --------------------------------------------------------------------


def keccak_f(state):
    """Apply the 24-round Keccak-f[1600] permutation to state in place."""
    lanew = state.lanew
    a = state.lanes()

    for rc in RoundConstants:
        # Theta
        c = [a[x] ^ a[x + 5] ^ a[x + 10] ^ a[x + 15] ^ a[x + 20] for x in range(5)]
        for x in range(5):
            d = c[(x + 4) % 5] ^ rol(c[(x + 1) % 5], 1, lanew)
            for y in range(0, 25, 5):
                a[x + y] ^= d

        # Rho & Pi
        current = a[1]
        for i, r in RhoPiSteps:
            a[i], current = rol(current, r, lanew), a[i]

        # Chi
        for y in range(0, 25, 5):
            t = a[y : y + 5]
            for x in range(5):
                a[x + y] = t[x] ^ ((~t[(x + 1) % 5]) & t[(x + 2) % 5])

        # Iota
        a[0] ^= rc

    state.set_lanes(a)


# --------------------------------------------------------------------
#                          Keccak Sponge
# --------------------------------------------------------------------


class KeccakSponge:
    """
    Single-use sponge: absorb the whole message once, pad, then squeeze.

    bitrate and capacity are in bits and must sum to 1600; suffix is the
    domain separation byte (0x01 for Keccak, 0x06 for SHA-3, 0x1F for
    SHAKE).
    """

    def __init__(self, bitrate, capacity, suffix):
        assert bitrate % 8 == 0
        assert 0 < bitrate < KeccakState.b
        assert bitrate + capacity == KeccakState.b
        self.bitrate = bitrate
        self.capacity = capacity
        self.suffix = suffix
        self.bitrate_bytes = bits2bytes(bitrate)
        self.state = KeccakState()
        self.offset = 0

    def absorb(self, data):
        rate = self.bitrate_bytes
        pos = 0
        b = 0
        while pos < len(data):
            b = min(len(data) - pos, rate)
            self.state.xor_bytes(data[pos : pos + b])
            pos += b
            if b == rate:
                keccak_f(self.state)
                b = 0
        self.offset = b

    def absorb_final(self):
        rate = self.bitrate_bytes
        s = self.state.s
        s[self.offset] ^= self.suffix
        # the suffix's top bit and the final pad bit would share a byte
        if self.suffix & 0x80 and self.offset == rate - 1:
            keccak_f(self.state)
        s[rate - 1] ^= 0x80
        keccak_f(self.state)

    def squeeze(self, length):
        rate = self.bitrate_bytes
        out = bytearray()
        while length > 0:
            b = min(length, rate)
            out += self.state.s[:b]
            length -= b
            if length > 0:
                keccak_f(self.state)
        return bytes(out)


def _as_bytes(data):
    if isinstance(data, str):
        raise TypeError("Strings must be encoded before hashing")
    return memoryview(data).cast("B")


def keccak(bitrate, capacity, data, suffix, output_length):
    """
    General Keccak sponge: hash data and return output_length bytes.

    Parameters are not validated beyond assertions; use a KeccakProfile
    for checked entry points.
    """
    assert output_length >= 0
    sponge = KeccakSponge(bitrate, capacity, suffix)
    sponge.absorb(_as_bytes(data))
    sponge.absorb_final()
    out = sponge.squeeze(output_length)
    sponge.state.clear()
    return out


# --------------------------------------------------------------------
#                          Keccak-256 Profile
# --------------------------------------------------------------------


@dataclass(frozen=True)
class KeccakProfile:
    name: str
    bitrate: int
    capacity: int
    suffix: int
    output_bytes: int

    @property
    def rate_bytes(self):
        return bits2bytes(self.bitrate)

    @property
    def width(self):
        return self.bitrate + self.capacity

    def validate(self):
        if self.bitrate <= 0 or self.bitrate % 8 != 0:
            raise KeccakConfigError(f"{self.name}: rate must be a positive multiple of 8 bits, got {self.bitrate}")
        if self.bitrate >= KeccakState.b:
            raise KeccakConfigError(f"{self.name}: rate must be below {KeccakState.b} bits, got {self.bitrate}")
        if self.width != KeccakState.b:
            raise KeccakConfigError(
                f"{self.name}: rate + capacity must be {KeccakState.b} bits, got {self.width}"
            )
        if not 0 < self.suffix <= 0xFF:
            raise KeccakConfigError(f"{self.name}: suffix must fit in one non-zero byte, got {self.suffix:#x}")
        if self.output_bytes < 0:
            raise KeccakConfigError(f"{self.name}: output length must not be negative")
        logger.debug("profile %s ok: rate=%d capacity=%d suffix=%#x", self.name, self.bitrate, self.capacity, self.suffix)
        return self

    def hash(self, data) -> bytes:
        self.validate()
        return keccak(self.bitrate, self.capacity, data, self.suffix, self.output_bytes)


# For Keccak256: rate=1088, capacity=512 => total 1600 bits, 256-bit output
KECCAK_256 = KeccakProfile("keccak-256", bitrate=1088, capacity=512, suffix=0x01, output_bytes=32)


def keccak256(data: bytes) -> bytes:
    return KECCAK_256.hash(data)


def keccak256_hex(data: bytes) -> str:
    return keccak256(data).hex()


# --------------------------------------------------------------------
#                                Main
# --------------------------------------------------------------------


def benchmark(data, iterations):
    """Time `iterations` Keccak-256 hashes of data; return (seconds, digest)."""
    digest = b""
    start = time.perf_counter()
    for _ in range(iterations):
        digest = keccak256(data)
    elapsed = time.perf_counter() - start
    logger.debug("benchmark: %d iterations of %d bytes in %.6fs", iterations, len(data), elapsed)
    return elapsed, digest


def _read_input(parser, args):
    if args.text is not None and args.file is not None:
        parser.error("give either TEXT or --file, not both")
    if args.file == "-":
        return sys.stdin.buffer.read()
    if args.file is not None:
        try:
            with open(args.file, "rb") as f:
                return f.read()
        except OSError as e:
            parser.error(f"cannot read {args.file}: {e.strerror}")
    text = DEFAULT_MESSAGE if args.text is None else args.text
    return text.encode("utf-8")


def _env_settings(parser):
    """Check the environment settings; returns (log level, bench iterations)."""
    level = LOG_LEVEL.upper()
    if not isinstance(logging.getLevelName(level), int):
        parser.error(f"KECCAK256_LOG_LEVEL: unknown log level {LOG_LEVEL!r}")
    try:
        iterations = int(BENCH_ITERATIONS)
    except ValueError:
        parser.error(f"KECCAK256_BENCH_ITERATIONS: expected an integer, got {BENCH_ITERATIONS!r}")
    if iterations <= 0:
        parser.error(f"KECCAK256_BENCH_ITERATIONS: must be positive, got {iterations}")
    return level, iterations


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="keccak256",
        description="Compute the Ethereum-style Keccak-256 digest of TEXT or a file.",
    )
    level, iterations = _env_settings(parser)
    parser.add_argument("text", nargs="?", metavar="TEXT",
                        help=f'text to hash, UTF-8 encoded (default: "{DEFAULT_MESSAGE}")')
    parser.add_argument("-f", "--file", help="hash the contents of FILE ('-' for stdin)")
    parser.add_argument("--raw", action="store_true", help="write the 32 raw digest bytes instead of hex")
    parser.add_argument("--bench", type=int, nargs="?", const=iterations, metavar="N",
                        help=f"time N hashes of the input (default N: {iterations})")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    data = _read_input(parser, args)
    logger.debug("hashing %d bytes with %s", len(data), KECCAK_256.name)

    if args.bench is not None:
        if args.bench <= 0:
            parser.error("--bench needs a positive iteration count")
        elapsed, digest = benchmark(data, args.bench)
        print(f"Keccak Benchmark ({args.bench} iterations)\n")
        print(f"  keccak256(): {elapsed:.6f}s total ({elapsed * 1000 / args.bench:.6f} ms/hash)\n")
        print("Example Hash:")
        print(f"  keccak256(): {digest.hex()}")
        return 0

    digest = keccak256(data)
    if args.raw:
        sys.stdout.buffer.write(digest)
        sys.stdout.buffer.flush()
    else:
        print(digest.hex())
    return 0


if __name__ == "__main__":
    sys.exit(main())
