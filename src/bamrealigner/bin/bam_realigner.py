import sys

import bamrealigner.logutils as logutils
import bamrealigner.workflow as workflow
import bamrealigner.config as libconfig
from bamrealigner.realigner import RealignerApp, SUMMARY_KEYS


def argument_parsing(args=None):
    parser_dict = workflow.init_parser(
        description=(
            'Builds a consistent gapped layout of reads and reference for '
            'each region of an intervals file and prints a per-region summary.'
        )
    )

    parser_dict['required'].add_argument(
        '-r', '--reference', dest='reference_path', required=True,
        type=workflow.arghandler_infile,
        help='Reference FASTA file. A missing .fai index is built.',
    )
    parser_dict['required'].add_argument(
        '-b', '--alignments', dest='alignment_path', required=True,
        type=workflow.arghandler_infile,
        help='Coordinate-sorted BAM file with a .bai index.',
    )
    parser_dict['required'].add_argument(
        '-i', '--intervals', dest='intervals_path', required=True,
        type=workflow.arghandler_infile,
        help=(
            'Regions to process. BED (.bed, .bed.gz) or\n'
            'one region per line (chr1 or chr1:1001-2000).'
        ),
    )

    parser_dict['optional'].add_argument(
        '--window-radius', dest='window_radius', required=False,
        type=workflow.arghandler_nonnegative_int,
        help=f'Bases added to both sides of each region. Default: {libconfig.DEFAULT_PARAMS["window_radius"]}',
    )
    parser_dict['optional'].add_argument(
        '-v', '--verbosity', dest='verbosity', required=False,
        type=workflow.arghandler_nonnegative_int,
        help=(
            '0: warnings only, 1: progress messages, 2: tracing.\n'
            f'Default: {libconfig.DEFAULT_PARAMS["verbosity"]}'
        ),
    )
    parser_dict['optional'].add_argument(
        '--config', dest='config_path', required=False,
        type=workflow.arghandler_infile,
        help='YAML file with parameters. Command line options take precedence.',
    )
    workflow.add_logging_args(parser_dict)

    return parser_dict['main'].parse_args(args)


def write_summary(summary, outfile):
    outfile.write('\t'.join(SUMMARY_KEYS) + '\n')
    for linedict in summary:
        outfile.write('\t'.join(str(linedict[key]) for key in SUMMARY_KEYS) + '\n')


def main_core(cmdargs, outfile=None):
    if outfile is None:
        outfile = sys.stdout

    params = libconfig.load_config(
        cmdargs.config_path,
        verbosity=cmdargs.verbosity,
        window_radius=cmdargs.window_radius,
    )
    level = logutils.set_verbosity(params['verbosity'])
    logutils.set_silent(cmdargs.silent)

    fh = None
    if cmdargs.log is not None:
        fh = logutils.add_logfile(cmdargs.log, level=level, append=cmdargs.append_log)

    try:
        app = RealignerApp(
            reference_path=cmdargs.reference_path,
            alignment_path=cmdargs.alignment_path,
            intervals_path=cmdargs.intervals_path,
            params=params,
        )
        summary = app.run()
    finally:
        if fh is not None:
            logutils.remove_logfile(fh)

    write_summary(summary, outfile)

    return summary


def main():
    cmdargs = argument_parsing()
    main_core(cmdargs)


if __name__ == '__main__':
    main()
