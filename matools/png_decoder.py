"""Incremental PNG decoder producing PngImage objects."""

from __future__ import annotations

import enum
import zlib

from matools.png_image import PngImage, png_id

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

_IHDR = png_id("IHDR")
_IDAT = png_id("IDAT")
_IEND = png_id("IEND")


class PngError(Exception):
    """Raised when PNG data cannot be decoded."""


class DecoderStatus(enum.IntEnum):
    """Overall progress of a PngDecoder."""

    ERROR = -1
    IHDR = 0
    IDAT = 1
    IEND = 2
    COMPLETE = 3


class _Phase(enum.Enum):
    SIGNATURE = enum.auto()
    HEADER = enum.auto()
    BODY = enum.auto()
    IDAT = enum.auto()
    CRC = enum.auto()


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa = abs(a - p)
    pb = abs(b - p)
    pc = abs(c - p)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _unfilter(filter_type: int, src: bytes, prev: bytes | None, xstride: int) -> bytearray:
    out = bytearray(src)
    n = len(out)
    if filter_type == 0:
        return out
    if filter_type == 1:
        for i in range(xstride, n):
            out[i] = (out[i] + out[i - xstride]) & 0xFF
        return out
    if filter_type == 2:
        if prev is not None:
            out[:] = bytes((s + p) & 0xFF for s, p in zip(src, prev))
        return out
    if filter_type == 3:
        for i in range(n):
            left = out[i - xstride] if i >= xstride else 0
            up = prev[i] if prev is not None else 0
            out[i] = (src[i] + ((left + up) >> 1)) & 0xFF
        return out
    if filter_type == 4:
        for i in range(n):
            left = out[i - xstride] if i >= xstride else 0
            up = prev[i] if prev is not None else 0
            upleft = prev[i - xstride] if prev is not None and i >= xstride else 0
            out[i] = (src[i] + _paeth(left, up, upleft)) & 0xFF
        return out
    raise ValueError(filter_type)


class PngDecoder:
    """Accepts PNG data in pieces of any size and decodes it as it arrives.

    Interlaced images are not supported, CRCs are not checked, and
    unknown critical chunks are kept like ancillary ones.
    """

    def __init__(self) -> None:
        self.image: PngImage | None = None
        self.status = DecoderStatus.IHDR
        self.message: str | None = None
        self._phase = _Phase.SIGNATURE
        self._pending = bytearray()
        self._have_ihdr = False
        self._have_iend = False
        self._chunk_id = 0
        self._chunk_len = 0
        self._idat_remaining = 0
        self._idat_total = 0
        self._inflater = None
        self._rowbuf = bytearray()
        self._rowlen = 0
        self._xstride = 1
        self._y = 0

    def provide_input(self, data: bytes) -> None:
        """Feed more bytes and advance decoding as far as possible.

        Raises PngError on malformed input; once failed, every later call
        raises too. Input after the end of the file is ignored.
        """
        if self.status == DecoderStatus.ERROR:
            raise PngError(self.message or "decoder already failed")
        if self.status == DecoderStatus.COMPLETE:
            return
        self._pending += data
        try:
            self._run()
        except PngError as exc:
            self._fail(str(exc))
            raise
        if self.status == DecoderStatus.COMPLETE:
            self._pending.clear()

    def _fail(self, message: str) -> None:
        if message:
            self.message = message
        self.status = DecoderStatus.ERROR

    def _take(self, n: int) -> bytes:
        piece = bytes(self._pending[:n])
        del self._pending[:n]
        return piece

    def _require_image(self) -> PngImage:
        if self.image is None:
            self.image = PngImage()
        return self.image

    def _run(self) -> None:
        while self.status != DecoderStatus.COMPLETE:
            phase = self._phase
            if phase is _Phase.SIGNATURE:
                if len(self._pending) < 8:
                    return
                if self._take(8) != PNG_SIGNATURE:
                    raise PngError("Signature mismatch.")
                self._phase = _Phase.HEADER
            elif phase is _Phase.HEADER:
                if len(self._pending) < 8:
                    return
                self._begin_chunk(self._take(8))
            elif phase is _Phase.BODY:
                if len(self._pending) < self._chunk_len:
                    return
                self._end_chunk(self._take(self._chunk_len))
            elif phase is _Phase.IDAT:
                if not self._pending:
                    return
                piece = self._take(min(self._idat_remaining, len(self._pending)))
                self._decode_idat(piece)
                self._idat_remaining -= len(piece)
                if self._idat_remaining <= 0:
                    self._phase = _Phase.CRC
            else:
                if len(self._pending) < 4:
                    return
                self._take(4)
                if self._have_iend:
                    self._finish()
                    return
                self._phase = _Phase.HEADER

    def _begin_chunk(self, header: bytes) -> None:
        length = int.from_bytes(header[:4], "big", signed=True)
        chunk_id = int.from_bytes(header[4:8], "big")
        if length < 0:
            raise PngError(f"Improbable chunk length 0x{length & 0xFFFFFFFF:08x}")
        if length == 0:
            self._phase = _Phase.CRC
            if chunk_id == _IEND:
                self._have_iend = True
            elif chunk_id not in (_IDAT, _IHDR):
                self._require_image().add_chunk(chunk_id, b"")
        elif chunk_id == _IDAT:
            if not self._have_ihdr:
                raise PngError("IDAT before IHDR")
            self._phase = _Phase.IDAT
            self._idat_remaining = length
        else:
            self._phase = _Phase.BODY
            self._chunk_id = chunk_id
            self._chunk_len = length

    def _end_chunk(self, body: bytes) -> None:
        if self._chunk_id == _IHDR:
            self._decode_ihdr(body)
        elif self._chunk_id == _IEND:
            self._have_iend = True
        else:
            self._require_image().add_chunk(self._chunk_id, body)
        self._chunk_id = 0
        self._chunk_len = 0
        self._phase = _Phase.CRC

    def _decode_ihdr(self, src: bytes) -> None:
        if self._have_ihdr:
            raise PngError("Multiple IHDR.")
        if len(src) < 13:
            raise PngError(f"Short IHDR ({len(src)}<13).")
        w = int.from_bytes(src[0:4], "big", signed=True)
        h = int.from_bytes(src[4:8], "big", signed=True)
        if w < 1 or h < 1:
            raise PngError(f"Invalid dimensions {w}x{h}.")
        if src[10] or src[11] or src[12]:
            raise PngError(
                f"Unsupported compression/filter/interlace: {src[10]}/{src[11]}/{src[12]}"
            )
        image = self._require_image()
        try:
            image.allocate_pixels(w, h, src[8], src[9])
        except ValueError as exc:
            raise PngError(str(exc)) from exc
        self._rowlen = 1 + image.stride
        self._xstride = max(image.pixelsize >> 3, 1)
        self._inflater = zlib.decompressobj()
        self._y = 0
        self._have_ihdr = True
        self.status = DecoderStatus.IDAT

    def _decode_idat(self, data: bytes) -> None:
        self._idat_total += len(data)
        try:
            out = self._inflater.decompress(data)
        except zlib.error as exc:
            raise PngError(f"inflate: {exc}") from exc
        self._receive(out)

    def _receive(self, out: bytes) -> None:
        self._rowbuf += out
        while len(self._rowbuf) >= self._rowlen:
            row = bytes(self._rowbuf[:self._rowlen])
            del self._rowbuf[:self._rowlen]
            self._receive_row(row)

    def _receive_row(self, row: bytes) -> None:
        image = self.image
        if self._y >= image.h:
            return
        stride = image.stride
        start = self._y * stride
        prev = bytes(image.pixels[start - stride:start]) if self._y else None
        try:
            pixels = _unfilter(row[0], row[1:], prev, self._xstride)
        except ValueError:
            raise PngError(
                f"Unexpected filter byte 0x{row[0]:02x} at row {self._y}"
            ) from None
        image.pixels[start:start + stride] = pixels
        self._y += 1
        if self._y >= image.h and self.status == DecoderStatus.IDAT:
            self.status = DecoderStatus.IEND

    def _finish(self) -> None:
        if not self._have_ihdr:
            raise PngError("No IHDR")
        if not self._idat_total:
            raise PngError("Missing or empty IDAT")
        try:
            out = self._inflater.flush()
        except zlib.error as exc:
            raise PngError(f"inflate: {exc}") from exc
        self._receive(out)
        if self._y < self.image.h:
            raise PngError(f"Image data ended early at row {self._y}")
        self.status = DecoderStatus.COMPLETE


def decode_png(data: bytes) -> PngImage:
    """Decode a complete PNG file held in memory.

    A missing IEND is tolerated as long as the pixel data is complete.
    """
    decoder = PngDecoder()
    decoder.provide_input(data)
    if decoder.status != DecoderStatus.COMPLETE:
        try:
            decoder._finish()
        except PngError as exc:
            decoder._fail(str(exc))
            raise
    if decoder.image is None:
        raise PngError("No image produced")
    return decoder.image