import pytest
import pysam

import bamrealigner.cigar as libcigar
import bamrealigner.logutils as logutils
from bamrealigner.interval import GenomicWindow
from bamrealigner.read.readhandler import AlignmentRecord


CHR1_SEQ = ('ACGTTGCAAGCTTCGA' * 20)[:300]
CHR2_SEQ = ('TTGACCAG' * 13)[:100]

# (name, chrom, start0, cigarstring, sequence)
BAM_READS = (
    ('read1', 'chr1', 100, '50M2I48M', CHR1_SEQ[100:150] + 'GG' + CHR1_SEQ[150:198]),
    ('read2', 'chr1', 120, '80M', CHR1_SEQ[120:200]),
    ('read3', 'chr1', 250, '20M', CHR1_SEQ[250:270]),
    ('read4', 'chr2', 10, '30M', CHR2_SEQ[10:40]),
)


@pytest.fixture(autouse=True)
def reset_log_level():
    yield
    logutils.set_verbosity(1)


@pytest.fixture
def make_record():
    """Returns a function building an AlignmentRecord from a CIGAR string.
    Without 'seq', a sequence of the right length is made up.
    """
    def factory(name, start0, cigarstring, seq=None, **kwargs):
        if seq is None:
            cigar = libcigar.cigarstring_to_cigartuples(cigarstring)
            seq = 'A' * libcigar.get_query_length(cigar)
        return AlignmentRecord.from_cigarstring(name, seq, start0, cigarstring, **kwargs)

    return factory


@pytest.fixture
def window20():
    return GenomicWindow('chr1', 0, 20)


@pytest.fixture
def ref20():
    return 'ACGTACGTACGTACGTACGT'


@pytest.fixture
def fasta_path(tmp_path):
    path = tmp_path / 'ref.fa'
    with open(path, 'wt') as outfile:
        for chrom, seq in (('chr1', CHR1_SEQ), ('chr2', CHR2_SEQ)):
            outfile.write(f'>{chrom}\n')
            for idx in range(0, len(seq), 60):
                outfile.write(seq[idx:(idx + 60)] + '\n')
    return str(path)


@pytest.fixture
def bam_path(tmp_path):
    path = str(tmp_path / 'reads.bam')
    header = {
        'HD': {'VN': '1.6', 'SO': 'coordinate'},
        'SQ': [
            {'SN': 'chr1', 'LN': len(CHR1_SEQ)},
            {'SN': 'chr2', 'LN': len(CHR2_SEQ)},
        ],
    }
    with pysam.AlignmentFile(path, 'wb', header=header) as outfile:
        for name, chrom, start0, cigarstring, seq in BAM_READS:
            seg = pysam.AlignedSegment(outfile.header)
            seg.query_name = name
            seg.flag = 0
            seg.reference_id = outfile.get_tid(chrom)
            seg.reference_start = start0
            seg.mapping_quality = 60
            seg.cigarstring = cigarstring
            seg.query_sequence = seq
            seg.query_qualities = pysam.qualitystring_to_array('I' * len(seq))
            outfile.write(seg)
    pysam.index(path)
    return path


@pytest.fixture
def intervals_path(tmp_path):
    path = tmp_path / 'regions.txt'
    path.write_text('# regions\nchr1:151-200\n\nchr1:1-20\n')
    return str(path)
