import os

import pysam

import bamrealigner.cigar as libcigar
import bamrealigner.logutils as logutils
import bamrealigner.tools as tools


class UnknownContigError(Exception):
    pass


class IndexLookupError(Exception):
    pass


class AlignmentRecord:
    """Read-only view of one aligned read.

    Attributes:
        name: read name
        seq: raw read sequence (soft-clipped bases included), or None
        is_reverse, is_unmapped
        rid: reference id in the alignment file header
        start0: 0-based leftmost aligned reference position
        cigar: list of (opcode, count); opcodes are validated when walked
    """

    def __init__(
        self, name, seq, start0, cigar,
        rid=0, is_reverse=False, is_unmapped=False,
    ):
        self.name = name
        self.seq = seq
        self.start0 = start0
        self.cigar = list(cigar)
        self.rid = rid
        self.is_reverse = is_reverse
        self.is_unmapped = is_unmapped

    # constructors #
    @classmethod
    def from_pysam(cls, read):
        return cls(
            name=read.query_name,
            seq=read.query_sequence,
            start0=read.reference_start,
            cigar=(list() if read.cigartuples is None else read.cigartuples),
            rid=read.reference_id,
            is_reverse=read.is_reverse,
            is_unmapped=read.is_unmapped,
        )

    @classmethod
    def from_cigarstring(cls, name, seq, start0, cigarstring, **kwargs):
        if cigarstring == '*':
            cigar = list()
        else:
            cigar = libcigar.cigarstring_to_cigartuples(cigarstring)
        return cls(name, seq, start0, cigar, **kwargs)
    ################

    def __repr__(self):
        return '<AlignmentRecord> ' + tools.repr_base(self, ('name', 'rid', 'start0', 'cigarstring'))

    @property
    def cigarstring(self):
        try:
            return libcigar.cigartuples_to_cigarstring(self.cigar)
        except libcigar.UnknownCigarOpError:
            return repr(self.cigar)

    @property
    def ref_length(self):
        """Reference-consuming length (M/X/=/D/N)"""
        return libcigar.get_ref_length(self.cigar)

    @property
    def end0(self):
        return self.start0 + self.ref_length


def readfilter_all(read):
    return True


class AlignmentSource(logutils.LoggingBase):
    """Indexed random access to a coordinate-sorted BAM file."""

    def __init__(self, bam_path, index_path=None, verbose=False):
        self.bam_path = bam_path
        self.verbose = verbose
        if index_path is None:
            candidate = bam_path + '.bai'
            if os.path.exists(candidate):
                index_path = candidate

        try:
            self.bam = pysam.AlignmentFile(bam_path, 'rb', index_filename=index_path)
        except (ValueError, OSError) as exc:
            raise IndexLookupError(f'Could not open BAM file "{bam_path}": {exc}')

        try:
            self.bam.check_index()
        except (ValueError, AttributeError) as exc:
            self.bam.close()
            raise IndexLookupError(f'Could not open BAI index for "{bam_path}": {exc}')

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self.bam.close()

    @property
    def contigs(self):
        return list(self.bam.references)

    def get_contig_id(self, chrom):
        rid = self.bam.get_tid(chrom)
        if rid < 0:
            raise UnknownContigError(f'Unknown reference {chrom}')
        return rid

    def contig_length(self, chrom):
        return self.bam.get_reference_length(chrom)

    def iter_fetch(self, chrom, start0):
        """Records overlapping or starting after start0 up to the contig end."""
        try:
            fetcher = self.bam.fetch(chrom, start0)
        except (ValueError, OSError) as exc:
            raise IndexLookupError(f'Problem jumping in file to {chrom}:{start0 + 1}: {exc}')

        try:
            for read in fetcher:
                yield read
        except OSError as exc:
            raise IndexLookupError(f'Problem reading records at {chrom}:{start0 + 1}: {exc}')

    def load_records(self, window, readfilter=None):
        """Loads records for 'window' and grows it to cover them.

        Reading stops at the first record sorting past the window end;
        the window end is updated while reading, so long reads pull in
        further records. Unmapped records are returned too (they do not
        grow the window).
        """
        if readfilter is None:
            readfilter = readfilter_all
        window.rid = self.get_contig_id(window.chrom)

        records = list()
        for read in self.iter_fetch(window.chrom, window.start0):
            if (read.reference_id, read.reference_start) > (window.rid, window.end0):
                break  # done, no more records
            if not readfilter(read):
                continue
            if (
                (not read.is_unmapped)
                and read.reference_id == window.rid
                and read.reference_end is not None
            ):
                window.grow(read.reference_start, read.reference_end)
            record = AlignmentRecord.from_pysam(read)
            records.append(record)

        self.log_debug(f'Loaded {len(records):,} records; window grown to {window.to_string()}')

        return records
