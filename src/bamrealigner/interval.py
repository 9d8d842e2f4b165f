import re

import pyranges as pr

import bamrealigner.tools as tools


REGION_PAT = re.compile(r'^(?P<chrom>[^:\s]+)(:(?P<start1>[0-9,]+)-(?P<end1>[0-9,]+))?$')
BED_SUFFIXES = ('.bed', '.bed.gz')


class GenomicWindow:
    """
    Attributes:
        chrom
        start0, end0: 0-based half-open; end0 may be None until resolved
            against the contig length
        rid: reference id in the alignment file, set when records are loaded
    """

    def __init__(self, chrom, start0, end0, rid=None):
        if start0 < 0:
            raise ValueError(f'Window start must be non-negative: {start0}')
        if (end0 is not None) and (end0 < start0):
            raise ValueError(f'Window end {end0} precedes start {start0}')

        self.chrom = chrom
        self.start0 = start0
        self.end0 = end0
        self.rid = rid

    def __repr__(self):
        return f'<GenomicWindow> {self.to_string()} (rid={self.rid})'

    def __eq__(self, other):
        return (
            isinstance(other, GenomicWindow)
            and (self.chrom, self.start0, self.end0) == (other.chrom, other.start0, other.end0)
        )

    @property
    def start1(self):
        return self.start0 + 1

    @property
    def end1(self):
        return self.end0

    @property
    def length(self):
        return self.end0 - self.start0

    def to_string(self):
        if self.end0 is None:
            return self.chrom
        return f'{self.chrom}:{self.start1:,}-{self.end1:,}'

    def copy(self):
        return self.__class__(self.chrom, self.start0, self.end0, rid=self.rid)

    def resolve(self, contig_length):
        """Fills in a missing end and clamps the end to the contig length."""
        if (self.end0 is None) or (self.end0 > contig_length):
            self.end0 = contig_length
        if self.start0 > self.end0:
            raise ValueError(
                f'Window {self.to_string()} starts past the contig end ({contig_length:,})'
            )

    def extend(self, radius, max_end0=None):
        if radius < 0:
            raise ValueError(f'Window radius must be non-negative: {radius}')
        self.start0 = max(0, self.start0 - radius)
        self.end0 = self.end0 + radius
        if max_end0 is not None:
            self.end0 = min(self.end0, max_end0)

    def grow(self, start0, end0):
        """Enlarges the window so that it covers [start0, end0)."""
        self.start0 = max(0, min(self.start0, start0))
        self.end0 = max(self.end0, end0)


def parse_region_string(text):
    """Args:
        text: "chr1" (whole contig) or "chr1:1,001-2,000" (1-based, closed)
    """
    mat = REGION_PAT.fullmatch(text.strip())
    if mat is None:
        raise ValueError(f'Invalid region string: {text!r}')

    chrom = mat.group('chrom')
    if mat.group('start1') is None:
        return GenomicWindow(chrom, 0, None)

    start1 = int(mat.group('start1').replace(',', ''))
    end1 = int(mat.group('end1').replace(',', ''))
    if start1 < 1:
        raise ValueError(f'Region start must be 1 or greater: {text!r}')
    return GenomicWindow(chrom, start1 - 1, end1)


class RegionList(list):
    # constructors #
    @classmethod
    def from_gr(cls, gr):
        result = cls()
        for chrom, start0, end0 in zip(gr.Chromosome, gr.Start, gr.End):
            result.append(GenomicWindow(str(chrom), int(start0), int(end0)))
        return result

    @classmethod
    def from_bed(cls, bedfile):
        # as_df keeps the file order
        df = pr.read_bed(str(bedfile), as_df=True)
        return cls.from_gr(df)

    @classmethod
    def from_region_strings(cls, lines):
        result = cls()
        for line in lines:
            line = line.strip()
            if (not line) or line.startswith('#'):
                continue
            result.append(parse_region_string(line))
        return result

    @classmethod
    def from_file(cls, path):
        path = str(path)
        if path.endswith(BED_SUFFIXES):
            return cls.from_bed(path)
        else:
            with tools.openfile(path) as infile:
                return cls.from_region_strings(infile)
    ################

    def __repr__(self):
        return f'<RegionList> ({len(self):,} regions)'
