# matools

Command-line converters that turn ordinary asset files into the compact
forms a small handheld arcade build consumes. Everything is pure Python.
PNG decoding and MIDI parsing are built in, so there is nothing else to
install.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Commands

Every command takes the output path joined to `-o` and exactly one input
path. On failure it prints a message to standard error and exits with
status 1.

### mkbba: MIDI song to BBA data

```
mkbba -oOUTPUT.bba INPUT.mid
```

Plays the MIDI file at 48 ticks per second. It records note-on and
note-off events for notes 0x20 to 0x5f, with their channel and velocity,
and the delays between them, in a compact binary stream:

- a byte with the high bit clear is a delay in ticks (at most 0x7f per
  byte);
- `0xE0 | channel` switches the channel;
- `0x80 | (note - 0x20)` is followed by a velocity byte, where 0 means
  note off.

A silent lead-in is dropped. A silence of 48 ticks or more after the last
note is dropped as well.

### mkfont: PNG glyph sheet to C font source

```
mkfont -oOUTPUT.c INPUT.png [-nNAME]
```

The image must be 128x48: 16 columns by 6 rows of 8x8 cells. The cells
hold the characters 0x20 to 0x7f. The image is reduced to 1-bit grey. Up
to 3 blank rows are skipped at the top of each cell. Blank rows at the
bottom and blank columns at both sides are trimmed. Each glyph is then
packed into one metrics byte, `(w << 5) | (h << 2) | y`, and 32 bits of
pixels. A glyph larger than 7x7 after trimming is an error. An empty space
character is given the metrics 0x60, which means 3 pixels wide.

The output declares `const struct ma_font font_NAME`. NAME defaults to the
input's file name without its directory and without anything from the
first dot onward.

### mkimage: PNG to C image source

```
mkimage -oOUTPUT.c INPUT.png [-nNAME] [-s8|-s16]
```

Writes an `MA_IMAGE_DECLARE(NAME,w,h,colorkey, ...)` block.

- With `-s8` or `-s16`, only that pixel size is written.
- With neither, both pixel sizes are written inside `#if MA_PIXELSIZE==8`
  / `#else`, after an `#include "multiarcade.h"`.

For the colour key, the converter scans w×h bytes of the RGBA data,
starting at the first pixel's alpha byte. A zero anywhere in that run
turns the key on: 0x1c for 8-bit, 0xe007 for 16-bit, pure green in both.
With the key on:

- pixels with alpha 0 are written as the key;
- opaque pixels that would equal the key have one green bit flipped.

NAME defaults as for `mkfont`.

### mktsv: 96x64 PNG to splash screen

```
mktsv -oOUTPUT.tsv INPUT.png [-s8|-s16]
```

The image must be exactly 96x64.

- The default output, also chosen by `-s16`, is 16-bit BGR565 written
  big-endian.
- `-s8` writes one byte per pixel instead. Each byte is the index of the
  nearest entry, by summed channel distance, in the device's 256-colour
  table (`matools.ctab.PALETTE`, looked up with `matools.ctab.match_rgb`).

## Library use

The pieces behind the commands can be used directly.

```python
from matools.png_decoder import decode_png
from matools.png_image import ColorType

with open("sprite.png", "rb") as f:
    image = decode_png(f.read())

rgba = image.convert(8, ColorType.RGBA)
```

`decode_png` raises `PngError` on input it cannot decode. For data that
arrives in pieces, `PngDecoder.provide_input` accepts any amount at a
time. The decoder reports its progress in `status`, a `DecoderStatus`.

`PngImage` holds the pixels, the IHDR fields and any other chunks. Its
methods are:

- `allocate_pixels`
- `add_chunk`
- `get_chunk`
- `convert`

`get_pixel_reader` and `get_pixel_writer` return per-pixel accessors that
work through 32-bit RGBA values.

```python
from matools.mid2bba import mid2bba_convert

with open("song.mid", "rb") as f:
    song = mid2bba_convert(f.read(), "song.mid")
```

`mid2bba_convert` raises `MidiError` if the MIDI data cannot be used.

`matools.midi_file` has `MidiFile` and `MidiFileReader`, which step through
a song's events frame by frame. `MidiFileReader.update()` returns one of:

- a `MidiEvent`;
- a number of frames to wait, consumed with `advance()`;
- `None` at the end.

`matools.midi_stream` has `MidiStream`, for decoding live MIDI byte
streams, and `MidiIntake`, which keeps one stream per device.

`matools.encoding` has big-endian integer packing and variable-length
quantity decoding. `matools.fsutil` has whole-file reads and writes,
directory listing and file-type checks.

## Limits

The PNG decoder has these limits:

- Interlaced images are not supported.
- CRCs are not checked.
- A missing IEND is tolerated once the pixel data is complete.
- An indexed image without a PLTE chunk is read as grey.
- Conversions go through 32-bit RGBA values, so 16-bit channels lose
  precision.

The MIDI reader does not support SMPTE timing.

The package reads PNG and MIDI only. It does not write PNG files and does
not play or send MIDI. It has no converter for tile sheets or textures.
The only image outputs are the font, image and splash-screen forms above.