"""Sparse gap representation of a gapped sequence.

A gapped sequence is stored as its ungapped symbols ("source") plus a list
of anchors. Each anchor is a pair (source_pos0, gap_count): gap_count is the
total number of gap columns lying before the source symbol at source_pos0.
Anchors are kept sorted by source_pos0 and gap_count strictly increases
along the list. An anchor at source_pos0 == source_length describes gaps
after the last symbol.

    source:  A C G T           anchors: (2, 2), (4, 3)
    view:    A C - - G T -
"""

import bisect
import itertools


GAP_CHAR = '-'


class GapAnchor:
    def __init__(self, source_length):
        if source_length < 0:
            raise ValueError(f'"source_length" must not be negative: {source_length}')
        self.source_length = source_length
        self._source_pos0s = list()
        self._gap_counts = list()
        self._view_pos0s_cache = None

    # constructors #
    @classmethod
    def from_gapped(cls, gapped_seq, gap_char=GAP_CHAR):
        """Returns (GapAnchor, ungapped sequence) from a gapped string."""
        ungapped = list()
        anchor_items = list()
        gap_count = 0
        for is_gap, subiter in itertools.groupby(gapped_seq, key=(lambda x: x == gap_char)):
            chars = list(subiter)
            if is_gap:
                gap_count += len(chars)
                anchor_items.append((len(ungapped), gap_count))
            else:
                ungapped.extend(chars)

        result = cls(len(ungapped))
        for source_pos0, count in anchor_items:
            result._source_pos0s.append(source_pos0)
            result._gap_counts.append(count)
        return result, ''.join(ungapped)
    ################

    def __repr__(self):
        return (
            f'<GapAnchor> source_length={self.source_length:,}, '
            f'view_length={self.view_length:,}, anchors={self.anchors}'
        )

    @property
    def anchors(self):
        return list(zip(self._source_pos0s, self._gap_counts))

    @property
    def gap_total(self):
        if len(self._gap_counts) == 0:
            return 0
        else:
            return self._gap_counts[-1]

    @property
    def view_length(self):
        return self.source_length + self.gap_total

    def gaps_before_source(self, source_pos0):
        """Number of gap columns before the symbol at source_pos0"""
        idx = bisect.bisect_right(self._source_pos0s, source_pos0) - 1
        if idx < 0:
            return 0
        else:
            return self._gap_counts[idx]

    def to_view(self, source_pos0):
        if not (0 <= source_pos0 <= self.source_length):
            raise IndexError(
                f'Source position {source_pos0} is out of range '
                f'(source length {self.source_length}).'
            )
        return source_pos0 + self.gaps_before_source(source_pos0)

    def to_source(self, view_pos0):
        """Returns (source_pos0, is_gap).
        If view_pos0 falls on a gap column, source_pos0 is the position of
        the next symbol (source_length when no symbol follows).
        """
        if not (0 <= view_pos0 <= self.view_length):
            raise IndexError(
                f'View position {view_pos0} is out of range '
                f'(view length {self.view_length}).'
            )
        if view_pos0 == self.view_length:
            return self.source_length, False

        # view position of the symbol at each anchor
        idx = bisect.bisect_right(self._anchor_view_pos0s(), view_pos0) - 1
        if idx < 0:
            gaps_before = 0
        else:
            gaps_before = self._gap_counts[idx]
        source_pos0 = view_pos0 - gaps_before

        # inside the gap block which precedes the next anchor
        next_idx = idx + 1
        if next_idx < len(self._source_pos0s):
            next_source_pos0 = self._source_pos0s[next_idx]
            block_start = next_source_pos0 + gaps_before
            if view_pos0 >= block_start:
                return next_source_pos0, True

        return source_pos0, False

    def _anchor_view_pos0s(self):
        if self._view_pos0s_cache is None:
            self._view_pos0s_cache = [
                s + g for s, g in zip(self._source_pos0s, self._gap_counts)
            ]
        return self._view_pos0s_cache

    def _source_chars_before_view(self, view_pos0):
        source_pos0, is_gap = self.to_source(view_pos0)
        return source_pos0

    def add_source_gaps(self, source_pos0, count):
        """Adds 'count' gap columns immediately before the symbol at
        source_pos0, after any gaps already there.
        """
        if count < 0:
            raise ValueError(f'Gap count must not be negative: {count}')
        if not (0 <= source_pos0 <= self.source_length):
            raise IndexError(
                f'Source position {source_pos0} is out of range '
                f'(source length {self.source_length}).'
            )
        if count == 0:
            return

        self._view_pos0s_cache = None
        idx = bisect.bisect_left(self._source_pos0s, source_pos0)
        if idx < len(self._source_pos0s) and self._source_pos0s[idx] == source_pos0:
            start_idx = idx
        else:
            self._source_pos0s.insert(idx, source_pos0)
            self._gap_counts.insert(idx, (self._gap_counts[idx - 1] if idx > 0 else 0))
            start_idx = idx

        for i in range(start_idx, len(self._gap_counts)):
            self._gap_counts[i] += count

    def insert_gaps(self, view_pos0, count):
        """Inserts 'count' gap columns at view position view_pos0, i.e. the
        column currently at view_pos0 moves right by 'count'.
        """
        source_pos0 = self._source_chars_before_view(view_pos0)
        self.add_source_gaps(source_pos0, count)

    def iter_blocks(self):
        """Yields (source_start0, source_end0, gap_count_before) blocks
        covering the whole source plus trailing gaps.
        """
        prev_source_pos0 = 0
        prev_gaps = 0
        for source_pos0, gap_count in self.anchors:
            if source_pos0 > prev_source_pos0:
                yield prev_source_pos0, source_pos0, 0
            yield source_pos0, source_pos0, gap_count - prev_gaps
            prev_source_pos0 = source_pos0
            prev_gaps = gap_count
        if self.source_length > prev_source_pos0:
            yield prev_source_pos0, self.source_length, 0

    def render(self, source_seq, gap_char=GAP_CHAR):
        if len(source_seq) != self.source_length:
            raise ValueError(
                f'Sequence length {len(source_seq)} differs from anchor '
                f'source length {self.source_length}.'
            )
        buffer = list()
        for source_start0, source_end0, n_gap in self.iter_blocks():
            if n_gap > 0:
                buffer.append(gap_char * n_gap)
            else:
                buffer.append(source_seq[source_start0:source_end0])
        return ''.join(buffer)


class GappedSequence:
    """Ungapped symbols plus their GapAnchor."""

    def __init__(self, seq, anchor=None):
        self.seq = seq
        if anchor is None:
            anchor = GapAnchor(len(seq))
        elif anchor.source_length != len(seq):
            raise ValueError(f'Anchor source length does not match sequence length.')
        self.anchor = anchor

    @classmethod
    def from_gapped(cls, gapped_seq, gap_char=GAP_CHAR):
        anchor, seq = GapAnchor.from_gapped(gapped_seq, gap_char=gap_char)
        return cls(seq, anchor)

    def __repr__(self):
        return f'<GappedSequence> {self.gapped}'

    def __len__(self):
        return self.anchor.view_length

    def __str__(self):
        return self.gapped

    @property
    def gapped(self):
        return self.anchor.render(self.seq)

    @property
    def gap_total(self):
        return self.anchor.gap_total

    def insert_gaps(self, view_pos0, count):
        self.anchor.insert_gaps(view_pos0, count)

    def add_source_gaps(self, source_pos0, count):
        self.anchor.add_source_gaps(source_pos0, count)
