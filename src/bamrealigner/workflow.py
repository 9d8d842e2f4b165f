import os
import argparse
import textwrap


HELP_WIDTH = 50
DESCRIPTION_WIDTH = 80


def check_infile_validity(infile):
    """
    Raise:
        If infile does not exist or user does not have read permission
    """

    if os.path.exists(infile):
        if os.path.isfile(infile):
            if not os.access(infile, os.R_OK):
                raise Exception(f'You do not have read permission on '
                                f'"{infile}".')
        else:
            raise Exception(f"'{infile}' is not a regular file.")
    else:
        raise Exception(f"'{infile}' does not exist.")


############################
# ARGPARSE SETUP FUNCTIONS #
############################

class CustomFormatter(
    argparse.ArgumentDefaultsHelpFormatter,
    argparse.RawTextHelpFormatter
):
    pass


def init_parser(description=None, formatter_class=None):
    if formatter_class is None:
        formatter_class = CustomFormatter

    parser = argparse.ArgumentParser(
        description=description,
        formatter_class=formatter_class,
        add_help=False,
    )

    required = parser.add_argument_group(
        title='REQUIRED',
        description=textwrap.fill(
            'Required ones which accept 1 or more arguments.',
            width=DESCRIPTION_WIDTH))

    optional = parser.add_argument_group(
        title='OPTIONAL',
        description=textwrap.fill(
            'Optional ones which accept 1 or more arguments.',
            width=DESCRIPTION_WIDTH))

    flag = parser.add_argument_group(
        title='FLAG',
        description=textwrap.fill(
            'Optional ones which accept 0 argument.',
            width=DESCRIPTION_WIDTH))

    add_help_arg(flag)

    parser_dict = {'main': parser, 'required': required,
                   'optional': optional, 'flag': flag}

    return parser_dict


def add_help_arg(parser, help='show this help message and exit'):
    parser.add_argument('-h', '--help', action='help',
                        help=textwrap.fill(help, width=HELP_WIDTH))


# functions which receive 'parser_dict' argument

def add_logging_args(parser_dict):
    parser_dict['optional'].add_argument(
        '--log',
        required=False,
        help=textwrap.fill(
            f'If used, progress messages will be written to this file. '
            f'Existing file will be truncated.',
            width=HELP_WIDTH,
        )
    )

    parser_dict['flag'].add_argument(
        '--append-log', dest='append_log', action='store_true',
        help=textwrap.fill('If set, existing log file is not truncated.',
                           width=HELP_WIDTH))

    parser_dict['flag'].add_argument(
        '--silent', action='store_true',
        help=textwrap.fill(
            'If set, progress messages will not be printed to the terminal.',
            width=HELP_WIDTH))


# arghandlers

def arghandler_infile(arg):
    arg = os.path.abspath(arg)

    try:
        check_infile_validity(arg)
    except Exception as e:
        raise argparse.ArgumentTypeError(str(e))
    else:
        return arg


def arghandler_nonnegative_int(arg):
    try:
        value = int(arg)
    except ValueError:
        raise argparse.ArgumentTypeError(f'Not an integer: {arg!r}')
    if value < 0:
        raise argparse.ArgumentTypeError(f'Must not be negative: {value}')
    return value
