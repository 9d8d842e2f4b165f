import textwrap

import bamrealigner
import bamrealigner.logutils as logutils
import bamrealigner.config as libconfig
from bamrealigner.interval import RegionList
from bamrealigner.refgenome import ReferenceSource
from bamrealigner.read.readhandler import AlignmentSource, IndexLookupError
from bamrealigner.align.layout import Layout, LayoutInvariantError
from bamrealigner.align.projector import build_layout


SUMMARY_KEYS = (
    'region', 'n_reads', 'n_unaligned', 'n_skipped',
    'n_gap_columns', 'contig_length', 'status',
)


class RealignerStep(logutils.LoggingBase):
    """Builds the layout of one region.

    The region is copied, resolved against the contig length and extended
    by 'window_radius'; loading alignments grows the copy further. The
    caller's region is never modified.
    """

    def __init__(self, alignment_source, reference_source, region, params=None, verbose=False):
        self.alignment_source = alignment_source
        self.reference_source = reference_source
        self.region = region
        self.params = libconfig.parse_params(**({} if params is None else params))
        self.verbose = verbose

        self.window = region.copy()
        self.window.rid = alignment_source.get_contig_id(region.chrom)
        contig_length = alignment_source.contig_length(region.chrom)
        try:
            self.window.resolve(contig_length)
        except ValueError as exc:
            raise IndexLookupError(str(exc))
        self.window.extend(self.params['window_radius'], max_end0=contig_length)

    def __repr__(self):
        return f'<RealignerStep> {self.region.to_string()} (window={self.window.to_string()})'

    def run(self):
        """Returns:
            Layout
        Raises:
            IndexLookupError, LayoutInvariantError, UnknownContigError
        """
        logutils.log('Loading alignments...', level='debug')
        records = self.alignment_source.load_records(self.window)
        n_mapped = sum((not x.is_unmapped) for x in records)
        self.log_debug(f'{len(records):,} records ({n_mapped:,} mapped) in {self.window.to_string()}')

        logutils.log('Loading reference...', level='debug')
        ref_seq = self.reference_source.fetch(self.window)

        if n_mapped == 0:
            logutils.log(f'No alignments in region {self.region.to_string()}', level='warning')
            if len(records) == 0:
                return Layout.empty(self.window, ref_seq)

        return build_layout(self.window, ref_seq, records, verbose=self.verbose)


class RealignerApp(logutils.LoggingBase):
    def __init__(self, reference_path, alignment_path, intervals_path, params=None):
        self.reference_path = reference_path
        self.alignment_path = alignment_path
        self.intervals_path = intervals_path
        self.params = libconfig.parse_params(**({} if params is None else params))
        self.verbose = (self.params['verbosity'] >= 2)

        self.reference_source = None
        self.alignment_source = None
        self.regions = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        if self.reference_source is not None:
            self.reference_source.close()
            self.reference_source = None
        if self.alignment_source is not None:
            self.alignment_source.close()
            self.alignment_source = None

    def print_banner(self):
        options = '\n'.join(
            [
                f'reference: {self.reference_path}',
                f'alignments: {self.alignment_path}',
                f'intervals: {self.intervals_path}',
            ]
            + [f'{key}: {val}' for key, val in self.params.items()]
        )
        logutils.log(
            f'BAM Realigner (version {bamrealigner.__version__})\n'
            + textwrap.indent(options, '    '),
            add_locstring=False,
        )

    def open_inputs(self):
        logutils.log(f'Opening {self.reference_path} (using FAI index) ...', add_locstring=False)
        self.reference_source = ReferenceSource(self.reference_path, verbose=self.verbose)

        logutils.log(f'Opening {self.alignment_path} ...', add_locstring=False)
        self.alignment_source = AlignmentSource(self.alignment_path, verbose=self.verbose)

        logutils.log(f'Opening {self.intervals_path} ...', add_locstring=False)
        self.regions = RegionList.from_file(self.intervals_path)

    def iter_layouts(self):
        """Processes regions one at a time.

        Yields:
            (region, layout); layout is None when the region failed.
        Raises:
            UnknownContigError
        """
        if self.alignment_source is None:
            self.open_inputs()

        for no, region in enumerate(self.regions, start=1):
            logutils.log(f'Processing (#{no}) {region.to_string()}', add_locstring=False)
            try:
                step = RealignerStep(
                    self.alignment_source, self.reference_source, region,
                    params=self.params, verbose=self.verbose,
                )
                layout = step.run()
            except (IndexLookupError, LayoutInvariantError) as exc:
                logutils.log(f'Skipping region {region.to_string()}: {exc}', level='error')
                yield region, None
                continue

            self.log_debug(repr(layout))
            yield region, layout

    def run(self):
        """Returns:
            list of per-region summary dicts (keys: SUMMARY_KEYS)
        """
        self.print_banner()
        try:
            summary = [
                summarize_layout(region, layout)
                for region, layout in self.iter_layouts()
            ]
        finally:
            self.close()

        logutils.log('DONE', add_locstring=False)

        return summary


def summarize_layout(region, layout):
    if layout is None:
        return {
            'region': region.to_string(),
            'n_reads': 0,
            'n_unaligned': 0,
            'n_skipped': 0,
            'n_gap_columns': 0,
            'contig_length': 0,
            'status': 'failed',
        }

    return {
        'region': region.to_string(),
        'n_reads': len(layout.reads),
        'n_unaligned': len(layout.unaligned),
        'n_skipped': len(layout.skipped),
        'n_gap_columns': layout.n_gap_columns,
        'contig_length': layout.contig_length,
        'status': ('ok' if layout.reads else 'empty'),
    }
