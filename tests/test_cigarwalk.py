import pytest

from bamrealigner.align.cigarwalk import walk_record, MalformedCigarError
from bamrealigner.align.gapledger import RefGapLedger


def test_match_only(make_record):
    record = make_record('r', 15, '10M', seq='ACGTACGTAC')
    placed, table = walk_record(record, 10, read_id=0)
    assert (placed.begin_pos, placed.end_pos) == (5, 15)
    assert placed.gapped_seq == 'ACGTACGTAC'
    assert table.to_dict() == {}


def test_deletion_and_skip_become_read_gaps(make_record):
    record = make_record('r', 0, '3M2D1M1N2M', seq='ACGTAC')
    placed, table = walk_record(record, 0, read_id=0)
    assert placed.gapped_seq == 'ACG--T-AC'
    assert placed.span_length == len(placed.gapped) == 9
    assert placed.deletions == {3: 2, 6: 1}
    assert len(table) == 0


def test_insertion_recorded_at_right_reference_base(make_record):
    ledger = RefGapLedger()
    record = make_record('r', 4, '3M2I3M', seq='ACGTTTAC')
    placed, table = walk_record(record, 2, read_id=7, ledger=ledger)
    assert table.read_id == 7
    assert table.to_dict() == {5: 2}
    assert ledger.to_dict() == {5: 2}
    assert placed.gapped_seq == 'ACGTTTAC'
    assert (placed.begin_pos, placed.end_pos) == (2, 8)


def test_adjacent_insertions_add_up(make_record):
    record = make_record('r', 0, '2M1I2I2M')
    _, table = walk_record(record, 0, read_id=0)
    assert table.to_dict() == {2: 3}


def test_clips_and_padding(make_record):
    record = make_record('r', 0, '3H2S4M1P3S', seq='GGACGTCCC')
    placed, _ = walk_record(record, 0, read_id=0)
    assert placed.clip_left == 'GG'
    assert placed.clip_right == 'CCC'
    assert placed.gapped_seq == 'ACGT'
    assert placed.span_length == 4


def test_leading_insertion(make_record):
    record = make_record('r', 3, '2I4M', seq='TTACGT')
    placed, table = walk_record(record, 0, read_id=0)
    assert table.to_dict() == {3: 2}
    assert placed.gapped_seq == 'TTACGT'


def test_trailing_insertion_kept_aside(make_record):
    record = make_record('r', 0, '4M2I', seq='ACGTGG')
    ledger = RefGapLedger()
    placed, table = walk_record(record, 0, read_id=0, ledger=ledger)
    assert placed.gapped_seq == 'ACGT'
    assert placed.trailing_insertion == 'GG'
    assert table.to_dict() == {4: 2}
    assert ledger.to_dict() == {4: 2}


@pytest.mark.parametrize(
    'start0, cigarstring, seq',
    [
        (0, '3B4M', 'ACGTACG'),  # unknown op
        (0, '4M', 'ACG'),  # sequence length mismatch
        (0, '4I', 'ACGT'),  # no reference-consuming operation
        (3, '4M', 'ACGT'),  # before the window origin
        (10, '4M', None),  # no sequence
    ],
)
def test_malformed(make_record, start0, cigarstring, seq):
    record = make_record('bad', start0, cigarstring, seq='')
    record.seq = seq
    ledger = RefGapLedger()
    with pytest.raises(MalformedCigarError, match='bad'):
        walk_record(record, 5, read_id=0, ledger=ledger)
    assert len(ledger) == 0


def test_negative_length(make_record):
    record = make_record('bad', 5, '4M', seq='ACGT')
    record.cigar = [(0, 4), (1, -1)]
    with pytest.raises(MalformedCigarError):
        walk_record(record, 0, read_id=0)


def test_unmapped_read_is_rejected(make_record):
    record = make_record('r', 0, '4M', seq='ACGT', is_unmapped=True)
    with pytest.raises(ValueError):
        walk_record(record, 0, read_id=0)
