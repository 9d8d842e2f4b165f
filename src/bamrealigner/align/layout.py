import numpy as np
import pandas as pd
import Bio.Seq
import Bio.SeqRecord
import Bio.Align

import bamrealigner.tools as tools
from bamrealigner.align.gapanchor import GappedSequence


EMPTY_VALUE = ''
MSA_PAD_CHAR = '.'
CONTIG_ROWID = -1
CONTIG_ROWNAME = '<contig>'


class LayoutInvariantError(Exception):
    pass


class PlacedRead:
    """A read with a gapped sequence and a [begin_pos, end_pos) span in
    gapped contig coordinates.

    Attributes:
        read_id: index of the read in its window's load order
        name: read name
        gapped: GappedSequence of the aligned part of the read (own
            deletions as gaps, own insertion bases included)
        begin_pos, end_pos: span in shared gapped contig coordinates
        ref_start0: window-relative reference start before projection
        ref_length: reference-consuming CIGAR length
        clip_left, clip_right: soft-clipped bases
        trailing_insertion: inserted bases after the last aligned
            reference base; not part of the layout
        deletions: {window-relative reference position: length} of the
            read's own deletions and skips
    """

    def __init__(
        self, read_id, name, gapped, ref_start0, ref_length,
        is_reverse=False, clip_left='', clip_right='', trailing_insertion='',
        deletions=None,
    ):
        self.read_id = read_id
        self.name = name
        self.gapped = gapped
        self.ref_start0 = ref_start0
        self.ref_length = ref_length
        self.begin_pos = ref_start0
        self.end_pos = ref_start0 + ref_length
        self.is_reverse = is_reverse
        self.clip_left = clip_left
        self.clip_right = clip_right
        self.trailing_insertion = trailing_insertion
        self.deletions = dict() if deletions is None else deletions

    def __repr__(self):
        return '<PlacedRead> ' + tools.repr_base(self, ('read_id', 'name', 'begin_pos', 'end_pos'))

    @property
    def span_length(self):
        return self.end_pos - self.begin_pos

    @property
    def gapped_seq(self):
        return self.gapped.gapped


class Layout:
    """Gapped contig plus placed reads for one window.

    Attributes:
        window: the GenomicWindow the layout covers
        contig: GappedSequence of the reference window
        reads: list of PlacedRead, in load order
        ref_gaps: {window-relative reference position: gap columns
            inserted before it}
        insertions: {read_id: {position: width}} own insertions per read
        unaligned: names of unmapped reads, excluded from the layout
        skipped: (read name, reason) of reads dropped as malformed
    """

    def __init__(self, window, contig, reads=None, ref_gaps=None, insertions=None, unaligned=None, skipped=None):
        self.window = window
        self.contig = contig
        self.reads = list() if reads is None else reads
        self.ref_gaps = dict() if ref_gaps is None else ref_gaps
        self.insertions = dict() if insertions is None else insertions
        self.unaligned = list() if unaligned is None else unaligned
        self.skipped = list() if skipped is None else skipped

    @classmethod
    def empty(cls, window, ref_seq):
        return cls(window, GappedSequence(ref_seq))

    def __repr__(self):
        return (
            f'<Layout> {self.window.to_string()} '
            f'(reads={len(self.reads):,}, gap columns={self.n_gap_columns:,}, '
            f'contig length={self.contig_length:,})'
        )

    @property
    def contig_seq(self):
        return self.contig.gapped

    @property
    def contig_length(self):
        return len(self.contig)

    @property
    def n_gap_columns(self):
        return sum(self.ref_gaps.values())

    def iter_rows(self):
        for read in self.reads:
            yield read.name, read.begin_pos, read.end_pos, read.gapped_seq

    def validate(self):
        expected = self.window.length + self.n_gap_columns
        if len(self.contig.seq) != self.window.length:
            raise LayoutInvariantError(
                f'Contig sequence length {len(self.contig.seq)} differs from '
                f'window length {self.window.length} ({self.window.to_string()})'
            )
        if self.contig_length != expected:
            raise LayoutInvariantError(
                f'Gapped contig length {self.contig_length} differs from '
                f'expected {expected} ({self.window.to_string()})'
            )
        for read in self.reads:
            if len(read.gapped) != read.span_length:
                raise LayoutInvariantError(
                    f'Gapped length {len(read.gapped)} of read {read.name} differs '
                    f'from its span length {read.span_length} ({self.window.to_string()})'
                )
            if not (0 <= read.begin_pos <= read.end_pos <= self.contig_length):
                raise LayoutInvariantError(
                    f'Span [{read.begin_pos}, {read.end_pos}) of read {read.name} '
                    f'exceeds the contig ({self.window.to_string()})'
                )

    # views #

    def to_dataframe(self):
        """Rows: contig then reads, indexed by (ReadID, ReadName).
        Columns: gapped contig positions. Cells outside read spans are ''.
        """
        ncol = self.contig_length
        arr = np.full((len(self.reads) + 1, ncol), EMPTY_VALUE, dtype=object)
        arr[0, :] = list(self.contig_seq)
        index_tuples = [(CONTIG_ROWID, CONTIG_ROWNAME)]
        for rowidx, read in enumerate(self.reads, start=1):
            arr[rowidx, read.begin_pos:read.end_pos] = list(read.gapped_seq)
            index_tuples.append((read.read_id, read.name))

        return pd.DataFrame(
            arr,
            index=pd.MultiIndex.from_tuples(index_tuples, names=['ReadID', 'ReadName']),
            columns=pd.RangeIndex(ncol),
        )

    def to_msa(self, pad_char=MSA_PAD_CHAR):
        ncol = self.contig_length
        seqrecs = [
            Bio.SeqRecord.SeqRecord(
                Bio.Seq.Seq(self.contig_seq),
                id=self.window.chrom,
                description=self.window.to_string(),
            )
        ]
        for read in self.reads:
            padded = (
                (pad_char * read.begin_pos)
                + read.gapped_seq
                + (pad_char * (ncol - read.end_pos))
            )
            seqrecs.append(
                Bio.SeqRecord.SeqRecord(
                    Bio.Seq.Seq(padded),
                    id=read.name,
                    description=('-' if read.is_reverse else '+'),
                )
            )
        return Bio.Align.MultipleSeqAlignment(seqrecs)
