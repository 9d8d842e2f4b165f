import os

import pysam

import bamrealigner.logutils as logutils
from bamrealigner.read.readhandler import IndexLookupError, UnknownContigError


def make_index(fasta_path):
    """If input file is bgzipped, *.fai and *.gzi files are created."""
    _ = pysam.faidx(fasta_path)


class ReferenceSource(logutils.LoggingBase):
    """Indexed random access to a FASTA file."""

    def __init__(self, fasta_path, verbose=False):
        self.fasta_path = fasta_path
        self.verbose = verbose
        if not os.path.exists(fasta_path + '.fai'):
            logutils.log(f'Building FASTA index for "{fasta_path}"')
            try:
                make_index(fasta_path)
            except pysam.SamtoolsError as exc:
                raise IndexLookupError(f'Could not build FAI index for "{fasta_path}": {exc}')

        try:
            self.fasta = pysam.FastaFile(fasta_path)
        except (ValueError, OSError) as exc:
            raise IndexLookupError(f'Could not open FASTA file "{fasta_path}": {exc}')

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        self.fasta.close()

    @property
    def contigs(self):
        return list(self.fasta.references)

    def contig_length(self, chrom):
        try:
            return self.fasta.get_reference_length(chrom)
        except KeyError:
            raise UnknownContigError(f'Unknown reference {chrom} in "{self.fasta_path}"')

    def fetch(self, window):
        """Returns the upper-cased sequence of exactly 'window'."""
        try:
            seq = self.fasta.fetch(window.chrom, window.start0, window.end0)
        except (KeyError, ValueError, IndexError) as exc:
            raise IndexLookupError(f'Problem loading reference for {window.to_string()}: {exc}')

        if len(seq) != window.length:
            raise IndexLookupError(
                f'Reference fetch for {window.to_string()} returned {len(seq):,} bases '
                f'instead of {window.length:,}'
            )
        self.log_debug(f'Loaded {len(seq):,} reference bases for {window.to_string()}')

        return seq.upper()
