"""The 256-entry 8-bit display colour table and nearest-colour lookup."""

from __future__ import annotations

from collections.abc import Sequence

_CTAB8 = bytes.fromhex(
    "000000 6d0000 c00000 ff0000  002200 6d2400 982400 ff2400"
    "004500 6d4900 924900 ff4900  006800 4d4d00 924d00 ff6d00"
    "009800 6d9200 a28200 ff9200  00bc00 4da600 92a600 ffb600"
    "00e000 6ddb00 9cd800 ffcb00  00ff00 6dff00 b8ff00 ffef00"
    "001224 6d0024 920024 ff0024  002424 5d2024 9c3038 ff2424"
    "004924 5d4224 a24424 ff4924  006222 626222 a26824 ff6d24"
    "009224 6d9224 9c8224 ff9224  00b624 6db624 9ea824 ffb624"
    "00db24 6ddb24 9cc424 ffdb24  00ff24 6dff24 e8e014 ffff24"
    "002449 552049 a20049 ff0049  002449 6d2449 922449 ff2449"
    "004040 404040 924949 ff3838  006d49 6d6d49 a06e4c ff6d49"
    "009249 6d9249 9c8c4c ff9249  00b649 6db649 9dac4d ffb649"
    "00db49 3ddb49 a2d050 ffdb49  00ff49 6dff49 a8ff54 ffff49"
    "00366d 48188d 92006d ff006d  00246d 6d246d 92246d ff246d"
    "00496d 6d496d 92496d ff496d  006060 486578 9c6a6d ff6060"
    "00926d 6d926d 92926d ff926d  00b66d 6db66d 98ae6d ffb66d"
    "00db6d 6ddb6d 9cd46d ffdb6d  00ff6d 6dff6d c2ff6d ffff6d"
    "004a92 201098 b240b2 ff1892  002492 30249a 922492 ff3492"
    "004992 6d4992 924992 ff5992  006d92 6d6d92 926d92 ff6d92"
    "009292 6d9292 a09c9c ffa0a0  00b692 54a092 92b692 ffb692"
    "00db92 63d890 92db92 ffdb92  00ff92 6dff9c 92ff92 ffff92"
    "005eb6 1808b6 9240b6 ff00b6  0024b6 2028b6 9224b6 ff24b6"
    "0049b6 3d4cb6 9249b6 ff49b6  006db6 4d6dbc 926db6 ff6db6"
    "0092b6 6098b6 929ab6 ff92b6  00b6b6 6ab2b3 92b6b6 ffbcbc"
    "00dbb6 3ddbb6 9cc6ba ffdbb6  00ffb6 6dffb6 92ffb6 ffffb6"
    "006edb 2010db 9200db d044c8  0024db 2d24db 9224db ff24db"
    "0049db 2d49db 9249db ff49db  006ddb 2d6ddb 926ddb ff6ddb"
    "0092db 2d92db 9292db ffb2db  00b6db 30b6db 92b6db ffb6db"
    "00dbdb 34dbdb 92dbdb f8dede  00ffdb 6dffdb 92ffdb ffffdb"
    "0080ff 2c00ff 9200ff e450ff  0094ff 2824ff 9224ff e85cff"
    "0049ff 4c9cff 9249ff ec70ff  006dff 62acff 926dff f07cff"
    "0092ff 4892ff 92d0ff ffa8ff  00b6ff 4db6ff 92e4ff ffc4ff"
    "00dbff 6ddbff b2dbff ffe4ff  00ffff 4dffff 92ffff ffffff"
)

PALETTE: tuple[tuple[int, int, int], ...] = tuple(
    (_CTAB8[i], _CTAB8[i + 1], _CTAB8[i + 2]) for i in range(0, len(_CTAB8), 3)
)


def match_rgb(rgb: Sequence[int]) -> int:
    """Return the palette index closest to ``rgb`` by summed channel distance.

    An exact match wins immediately; otherwise the first entry with the
    lowest distance is chosen.
    """
    r, g, b = rgb[0], rgb[1], rgb[2]
    best = 0
    best_score = None
    for index, (pr, pg, pb) in enumerate(PALETTE):
        score = abs(r - pr) + abs(g - pg) + abs(b - pb)
        if score == 0:
            return index
        if best_score is None or score < best_score:
            best = index
            best_score = score
    return best