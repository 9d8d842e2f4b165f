import pytest

from bamrealigner.interval import GenomicWindow
from bamrealigner.align.cigarwalk import walk_record
from bamrealigner.align.gapanchor import GappedSequence
from bamrealigner.align.gapledger import RefGapLedger
from bamrealigner.align.layout import LayoutInvariantError
from bamrealigner.align.projector import LayoutProjector, build_layout


@pytest.fixture
def staggered_records(make_record, ref20):
    ref = ref20
    return [
        make_record('P', 0, '5M1I10M', seq=(ref[0:5] + 'T' + ref[5:15])),
        make_record('Q', 3, '4M3I8M', seq=(ref[3:7] + 'GGG' + ref[7:15])),
        make_record('R', 7, '2I6M', seq=('CC' + ref[7:13])),
        make_record('S', 2, '5M', seq=ref[2:7]),
    ]


def get_read(layout, name):
    return next(x for x in layout.reads if x.name == name)


def test_worked_example(make_record):
    ref = ('ACGTTGCA' * 13)[:100]
    window = GenomicWindow('chr1', 100, 200)
    read_a = make_record('A', 100, '50M2I48M', seq=(ref[0:50] + 'GG' + ref[50:98]))
    read_b = make_record('B', 120, '80M', seq=ref[20:100])

    layout = build_layout(window, ref, [read_a, read_b])

    assert layout.ref_gaps == {50: 2}
    assert layout.contig_seq == ref[:50] + '--' + ref[50:]
    assert layout.contig_length == 102

    placed_a = get_read(layout, 'A')
    assert placed_a.gapped_seq == read_a.seq
    assert (placed_a.begin_pos, placed_a.end_pos) == (0, 102)

    placed_b = get_read(layout, 'B')
    assert placed_b.gapped_seq == ref[20:50] + '--' + ref[50:100]
    assert (placed_b.begin_pos, placed_b.end_pos) == (20, 102)


def test_staggered_insertions(window20, ref20, staggered_records):
    ref = ref20
    layout = build_layout(window20, ref, staggered_records)

    assert layout.ref_gaps == {5: 1, 7: 3}
    assert layout.contig_seq == ref[:5] + '-' + ref[5:7] + '---' + ref[7:]
    assert layout.insertions == {0: {5: 1}, 1: {7: 3}, 2: {7: 2}, 3: {}}

    expected = {
        'P': (0, 19, ref[0:5] + 'T' + ref[5:7] + '---' + ref[7:15]),
        'Q': (3, 19, ref[3:5] + '-' + ref[5:7] + 'GGG' + ref[7:15]),
        'R': (9, 17, 'CC' + ref[7:13]),
        'S': (2, 8, ref[2:5] + '-' + ref[5:7]),
    }
    for name, (begin_pos, end_pos, gapped_seq) in expected.items():
        read = get_read(layout, name)
        assert (read.begin_pos, read.end_pos, read.gapped_seq) == (begin_pos, end_pos, gapped_seq)


def test_columns_line_up(window20, ref20, staggered_records):
    layout = build_layout(window20, ref20, staggered_records)
    df = layout.to_dataframe()

    assert df.shape == (5, 24)
    assert list(df.index.names) == ['ReadID', 'ReadName']
    assert df.index[0] == (-1, '<contig>')
    assert list(df.index.get_level_values('ReadName')[1:]) == ['P', 'Q', 'R', 'S']
    assert ''.join(df.iloc[0]) == layout.contig_seq
    # reference base 7 in contig column 11
    assert list(df.iloc[:4, 11]) == [ref20[7]] * 4
    assert df.iloc[4, 11] == ''
    # the single inserted column
    assert list(df.iloc[:5, 5]) == ['-', 'T', '-', '', '-']


def test_widest_insertion_wins(make_record, window20, ref20):
    ref = ref20
    records = [
        make_record('A', 0, '10M1I10M', seq=(ref[0:10] + 'T' + ref[10:20])),
        make_record('B', 0, '10M3I10M', seq=(ref[0:10] + 'GGG' + ref[10:20])),
    ]
    layout = build_layout(window20, ref, records)

    assert layout.ref_gaps == {10: 3}
    assert layout.contig_seq == ref[:10] + '---' + ref[10:]
    # own inserted base first, then the missing columns
    assert get_read(layout, 'A').gapped_seq == ref[:10] + 'T--' + ref[10:]
    assert get_read(layout, 'B').gapped_seq == records[1].seq


def test_shift_and_edges(make_record, window20, ref20):
    ref = ref20
    records = [
        make_record('A', 0, '10M3I10M', seq=(ref[0:10] + 'GGG' + ref[10:20])),
        make_record('right', 15, '5M', seq=ref[15:20]),
        make_record('leading', 10, '5M', seq=ref[10:15]),
        make_record('leading_ins', 10, '1I5M', seq=('T' + ref[10:15])),
        make_record('trailing', 5, '5M', seq=ref[5:10]),
    ]
    layout = build_layout(window20, ref, records)

    spans = {x.name: (x.begin_pos, x.end_pos, x.gapped_seq) for x in layout.reads}
    assert spans['right'] == (18, 23, ref[15:20])
    assert spans['leading'] == (13, 18, ref[10:15])
    assert spans['leading_ins'] == (12, 18, 'T' + ref[10:15])
    assert spans['trailing'] == (5, 10, ref[5:10])
    assert spans['A'] == (0, 23, records[0].seq)


def test_trailing_insertion_not_laid_out(make_record):
    ref = 'ACGTACGTAC'
    window = GenomicWindow('chr1', 0, 10)
    record = make_record('T', 0, '10M2I', seq=(ref + 'GG'))
    layout = build_layout(window, ref, [record])

    read = layout.reads[0]
    assert layout.contig_seq == ref + '--'
    assert (read.begin_pos, read.end_pos) == (0, 10)
    assert read.gapped_seq == ref
    assert read.trailing_insertion == 'GG'


def test_no_insertion_identity(make_record, window20, ref20):
    records = [
        make_record('a', 0, '10M', seq=ref20[0:10]),
        make_record('b', 4, '3M2D5M', seq=(ref20[4:7] + ref20[9:14])),
        make_record('c', 12, '8M', seq=ref20[12:20]),
    ]
    layout = build_layout(window20, ref20, records)

    assert layout.contig_seq == ref20
    assert layout.ref_gaps == {}
    for record, read in zip(records, layout.reads):
        assert read.begin_pos == record.start0
        assert read.end_pos == record.end0
    assert layout.reads[1].gapped_seq == ref20[4:7] + '--' + ref20[9:14]
    assert list(layout.iter_rows())[0] == ('a', 0, 10, ref20[0:10])


@pytest.mark.parametrize(
    'cigarstrings',
    [
        [(0, '20M')],
        [(0, '3M1I17M'), (2, '2M4I16M'), (6, '14M')],
        [(1, '2I5M'), (1, '1I5M'), (6, '2M2I2M2I2M'), (0, '6M3I14M')],
    ],
)
def test_round_trip_column_count(make_record, window20, ref20, cigarstrings):
    records = [make_record(f'r{idx}', start0, cigar) for idx, (start0, cigar) in enumerate(cigarstrings)]
    layout = build_layout(window20, ref20, records)

    assert layout.contig_length == window20.length + sum(layout.ref_gaps.values())
    for read in layout.reads:
        assert len(read.gapped) == read.end_pos - read.begin_pos
    msa = layout.to_msa()
    assert msa.get_alignment_length() == layout.contig_length
    assert len(msa) == len(records) + 1


def test_unaligned_skipped_and_excluded(make_record, window20, ref20):
    records = [
        make_record('ok', 0, '4M', seq=ref20[0:4]),
        make_record('unmapped', 0, '*', seq='ACGT', is_unmapped=True),
        make_record('bad', 0, '4M', seq='ACG'),
        make_record('far', 20, '4M'),
        make_record('other_contig', 0, '4M', rid=1),
    ]
    window20.rid = 0
    layout = build_layout(window20, ref20, records)

    assert [x.name for x in layout.reads] == ['ok']
    assert layout.unaligned == ['unmapped']
    assert [name for name, reason in layout.skipped] == ['bad', 'far', 'other_contig']


def test_empty_layout(window20, ref20):
    layout = build_layout(window20, ref20, [])
    assert layout.contig_seq == ref20
    assert layout.reads == []
    assert layout.to_dataframe().shape == (1, 20)


def test_reference_length_mismatch(window20):
    with pytest.raises(LayoutInvariantError):
        build_layout(window20, 'ACGT', [])


def test_read_beyond_window_end(make_record, window20, ref20):
    with pytest.raises(LayoutInvariantError):
        build_layout(window20, ref20, [make_record('long', 15, '10M')])


def test_missing_insertion_table(make_record, ref20):
    placed, _ = walk_record(make_record('r', 0, '10M'), 0, read_id=0)
    ledger = RefGapLedger()
    ledger.add(4, 1)
    projector = LayoutProjector(GappedSequence(ref20), [placed], ledger, insertion_tables=dict())
    with pytest.raises(LayoutInvariantError):
        projector.run()
