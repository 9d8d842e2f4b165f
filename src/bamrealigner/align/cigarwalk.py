"""Converts one read's CIGAR into its initial placement.

The walk keeps two cursors: read_pos (offset into the raw read sequence)
and ref_pos (window-relative reference offset). Matches advance both,
deletions and skips advance ref_pos and become gaps in the read's own
gapped sequence, insertions advance read_pos and are recorded in the
read's insertion table keyed by ref_pos. Clips and padding never touch
ref_pos.
"""

import bamrealigner.cigar as libcigar
from bamrealigner.cigar import CigarOp
from bamrealigner.align.gapanchor import GappedSequence
from bamrealigner.align.gapledger import ReadInsertionTable
from bamrealigner.align.layout import PlacedRead


class MalformedCigarError(Exception):
    pass


def _raise_malformed(record, region, reason):
    raise MalformedCigarError(f'Read {record.name} in {region}: {reason}')


def walk_record(record, window_start0, read_id, ledger=None, region=None):
    """Args:
        record: a mapped AlignmentRecord
        window_start0: 0-based window start, the origin of ref_pos
        read_id: identifier given to the resulting PlacedRead
        ledger: RefGapLedger to be updated with this read's insertions
        region: region text used in error messages
    Returns:
        (PlacedRead, ReadInsertionTable)
    Raises:
        MalformedCigarError
    """
    if record.is_unmapped:
        raise ValueError(f'Unmapped read {record.name} cannot be walked.')
    if region is None:
        region = f'window starting at {window_start0 + 1:,}'

    if record.seq is None:
        _raise_malformed(record, region, 'read sequence is not available')

    ops = list()
    for opcode, count in record.cigar:
        try:
            op = libcigar.to_cigarop(opcode)
        except libcigar.UnknownCigarOpError as exc:
            _raise_malformed(record, region, str(exc))
        if count < 0:
            _raise_malformed(record, region, f'negative length {count} for {op.opstring}')
        ops.append((op, count))

    query_length = sum(count for op, count in ops if op.consumes_query)
    if query_length != len(record.seq):
        _raise_malformed(
            record, region,
            f'CIGAR consumes {query_length} read bases but the sequence has {len(record.seq)}',
        )
    ref_length = sum(count for op, count in ops if op.consumes_ref)
    if ref_length == 0:
        _raise_malformed(record, region, 'CIGAR has no reference-consuming operation')

    ref_start0 = record.start0 - window_start0
    if ref_start0 < 0:
        _raise_malformed(
            record, region,
            f'alignment start {record.start0 + 1:,} lies before the window origin',
        )

    read_pos = 0
    ref_pos = ref_start0
    aligned_chars = list()
    aligned_length = 0
    deletions = list()  # (source_pos0, count) in the read's own gapped sequence
    own_deletions = dict()  # window-relative reference position -> length
    insertion_table = ReadInsertionTable(read_id)
    clip_left = ''
    clip_right = ''
    seen_aligned = False

    for op, count in ops:
        if op in libcigar.CIGAROPS_ALIGNED:
            aligned_chars.append(record.seq[read_pos:(read_pos + count)])
            aligned_length += count
            read_pos += count
            ref_pos += count
            seen_aligned = True
        elif op in libcigar.CIGAROPS_TARGETONLY:
            deletions.append((aligned_length, count))
            own_deletions[ref_pos] = count
            ref_pos += count
            seen_aligned = True
        elif op == CigarOp.INS:
            insertion_table.add(ref_pos, count)
            aligned_chars.append(record.seq[read_pos:(read_pos + count)])
            aligned_length += count
            read_pos += count
        elif op == CigarOp.SOFT_CLIP:
            clipped = record.seq[read_pos:(read_pos + count)]
            if seen_aligned:
                clip_right += clipped
            else:
                clip_left += clipped
            read_pos += count
        elif op in (CigarOp.HARD_CLIP, CigarOp.PAD):
            pass  # no-op

    ref_end0 = ref_pos
    aligned_seq = ''.join(aligned_chars)

    # inserted bases after the last reference base are not laid out
    trailing_width = insertion_table.width_at(ref_end0)
    if trailing_width > 0:
        trailing_insertion = aligned_seq[len(aligned_seq) - trailing_width:]
        aligned_seq = aligned_seq[:len(aligned_seq) - trailing_width]
    else:
        trailing_insertion = ''

    gapped = GappedSequence(aligned_seq)
    for source_pos0, count in deletions:
        gapped.add_source_gaps(source_pos0, count)

    placed = PlacedRead(
        read_id=read_id,
        name=record.name,
        gapped=gapped,
        ref_start0=ref_start0,
        ref_length=ref_length,
        is_reverse=record.is_reverse,
        clip_left=clip_left,
        clip_right=clip_right,
        trailing_insertion=trailing_insertion,
        deletions=own_deletions,
    )
    if ledger is not None:
        ledger.update(insertion_table)

    return placed, insertion_table
