import numpy as np

import bamrealigner.logutils as logutils
from bamrealigner.align.gapanchor import GappedSequence
from bamrealigner.align.gapledger import RefGapLedger
from bamrealigner.align.overlapindex import OverlapIndex
from bamrealigner.align.layout import Layout, LayoutInvariantError
from bamrealigner.align.cigarwalk import walk_record, MalformedCigarError


class LayoutProjector(logutils.LoggingBase):
    """Materializes ledger gap columns in every read and in the contig.

    Ledger positions are processed from the highest to the lowest. Gaps
    inserted at a position never move anything to its left, so for every
    position still to be processed the reads overlapping it keep their
    initial begin_pos and their local offsets stay valid.
    """

    def __init__(self, contig, placed_reads, ledger, insertion_tables, verbose=False):
        """Args:
            contig: GappedSequence of the reference window
            placed_reads: list of PlacedRead with initial spans
            ledger: RefGapLedger
            insertion_tables: {read_id: ReadInsertionTable}
        """
        self.contig = contig
        self.placed_reads = placed_reads
        self.ledger = ledger
        self.insertion_tables = insertion_tables
        self.verbose = verbose

        self.read_dict = {read.read_id: read for read in placed_reads}
        self.index = OverlapIndex.from_placed_reads(placed_reads)

        # spans are shifted as arrays and written back at the end
        self.read_ids = [read.read_id for read in placed_reads]
        self.begins = np.array([read.begin_pos for read in placed_reads], dtype=np.int64)
        self.ends = np.array([read.end_pos for read in placed_reads], dtype=np.int64)
        self.rowidx = {read_id: idx for idx, read_id in enumerate(self.read_ids)}

    def get_read(self, read_id):
        try:
            return self.read_dict[read_id]
        except KeyError:
            raise LayoutInvariantError(f'Read id {read_id} is not among the placed reads.')

    def get_insertion_table(self, read_id):
        try:
            return self.insertion_tables[read_id]
        except KeyError:
            raise LayoutInvariantError(f'Read id {read_id} has no insertion table.')

    def run(self):
        for pos0, width in self.ledger.iter_descending():
            self.project_into_reads(pos0, width)
            self.shift_spans(pos0, width)

        self.materialize_contig_gaps()
        self.write_back_spans()

    def project_into_reads(self, pos0, width):
        for read_id in self.index.query(pos0):
            read = self.get_read(read_id)
            table = self.get_insertion_table(read_id)
            idx = self.rowidx[read_id]
            begin_pos = int(self.begins[idx])
            if begin_pos != read.ref_start0:
                raise LayoutInvariantError(
                    f'Read {read.name} overlapping position {pos0} was shifted before projection.'
                )

            view_pos0 = pos0 - begin_pos
            span_length = int(self.ends[idx]) - begin_pos
            if view_pos0 == 0 or view_pos0 == span_length:
                # leading edge is handled by shift_spans; trailing edge is not laid out
                continue

            excess = width - table.width_at(pos0)
            if excess < 0:
                raise LayoutInvariantError(
                    f'Read {read.name} inserts more at position {pos0} than the ledger width {width}.'
                )
            if excess > 0:
                local_pos0 = view_pos0 + table.cumulative_width(pos0)
                read.gapped.insert_gaps(local_pos0, excess)
                self.log_debug(f'{excess} gaps into read {read.name} at local offset {local_pos0}')

    def shift_spans(self, pos0, width):
        leading = (self.begins == pos0)
        right = (self.begins > pos0)
        spanning = (self.begins < pos0) & (self.ends > pos0)

        self.ends[spanning] += width
        self.begins[right] += width
        self.ends[right] += width

        # own leading insertion bases fill the rightmost columns of the block
        for idx in np.flatnonzero(leading):
            self_width = self.get_insertion_table(self.read_ids[idx]).width_at(pos0)
            self.begins[idx] += width - self_width
            self.ends[idx] += width

    def materialize_contig_gaps(self):
        for pos0, width in self.ledger.iter_descending():
            # positions below pos0 are still ungapped, so view == source here
            self.contig.insert_gaps(pos0, width)

    def write_back_spans(self):
        for read, begin_pos, end_pos in zip(self.placed_reads, self.begins, self.ends):
            read.begin_pos = int(begin_pos)
            read.end_pos = int(end_pos)


def build_layout(window, ref_seq, records, verbose=False):
    """Builds the gapped layout of one window.

    Args:
        window: GenomicWindow, already grown to cover the records
        ref_seq: ungapped reference sequence of exactly the window
        records: iterable of AlignmentRecord
    Returns:
        Layout
    Raises:
        LayoutInvariantError
    """
    region = window.to_string()
    if len(ref_seq) != window.length:
        raise LayoutInvariantError(
            f'Reference sequence length {len(ref_seq)} differs from window length {window.length} ({region})'
        )

    ledger = RefGapLedger()
    placed_reads = list()
    insertion_tables = dict()
    unaligned = list()
    skipped = list()

    for read_id, record in enumerate(records):
        if record.is_unmapped:
            unaligned.append(record.name)
            continue
        if (window.rid is not None) and (record.rid != window.rid):
            skipped.append((record.name, 'aligned to another contig'))
            continue
        if record.start0 >= window.end0:
            skipped.append((record.name, 'starts past the window end'))
            continue

        try:
            placed, table = walk_record(
                record, window.start0, read_id, ledger=ledger, region=region,
            )
        except MalformedCigarError as exc:
            logutils.log(f'Skipping malformed record: {exc}', level='warning')
            skipped.append((record.name, str(exc)))
            continue

        if placed.end_pos > window.length:
            raise LayoutInvariantError(
                f'Read {record.name} ends past the window {region}; '
                f'the window must cover every loaded read.'
            )
        placed_reads.append(placed)
        insertion_tables[read_id] = table

    contig = GappedSequence(ref_seq)
    projector = LayoutProjector(contig, placed_reads, ledger, insertion_tables, verbose=verbose)
    projector.run()

    layout = Layout(
        window=window,
        contig=contig,
        reads=placed_reads,
        ref_gaps=ledger.to_dict(),
        insertions={read_id: table.to_dict() for read_id, table in insertion_tables.items()},
        unaligned=unaligned,
        skipped=skipped,
    )
    layout.validate()

    return layout
