import os
import re
import logging
import inspect
import itertools

import bamrealigner.tools as tools


LOCATION_EXCL_PAT = re.compile(
    '|'.join(
        (
            r'^<.*>$',
            r'/logutils\.py$',
            r'/_pytest/',
            r'/pluggy/',
        )
    )
)
VERBOSITY_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def _make_logger():
    LOGGER = logging.getLogger('bamrealigner_logger')
    LOGGER.propagate = False
    LOGGER.setLevel(logging.DEBUG)

    STREAMHANDLER = logging.StreamHandler()
    LOGGER.addHandler(STREAMHANDLER)

    STREAMHANDLER.setLevel(logging.INFO)

    return LOGGER, STREAMHANDLER

LOGGER, STREAMHANDLER = _make_logger()


def set_verbosity(verbosity):
    """0: warnings only, 1: progress messages, 2 or more: tracing"""
    if verbosity < 0:
        raise ValueError(f'"verbosity" must not be negative: {verbosity}')
    level = VERBOSITY_LEVELS[min(verbosity, max(VERBOSITY_LEVELS))]
    STREAMHANDLER.setLevel(level)
    return level


def set_silent(silent):
    if silent:
        STREAMHANDLER.setLevel(logging.CRITICAL + 1)


def add_logfile(filename, level=logging.INFO, append=False):
    """Every following message of 'level' or above is also written to 'filename'."""
    fh = make_filehandler(filename, level=level, formatter=None, append=append)
    LOGGER.addHandler(fh)
    return fh


def remove_logfile(fh):
    LOGGER.removeHandler(fh)
    fh.close()


# main logger

def log(
    msg,
    level='info',
    add_locstring=None, locstring_mode=None,
    filename=None, append=True,
):
    # postprocess params
    level = getattr(logging, level.upper())
    if add_locstring is None:
        add_locstring = True
    if locstring_mode is None:
        if level == logging.DEBUG:
            locstring_mode = 'verbose'
        else:
            locstring_mode = 'default'

    # main
    formatter = logging.Formatter(
        fmt=make_logformat(level, add_locstring=add_locstring),
        datefmt='%Z %Y-%m-%d %H:%M:%S', # KST 2022-03-23 22:12:34
    )
    # streamhandler and persistent log files
    for handler in LOGGER.handlers:
        handler.setFormatter(formatter)
    # filehandler
    if filename is not None:
        fh = make_filehandler(
            filename,
            level=STREAMHANDLER.level,
            formatter=formatter,
            append=append,
        )
        LOGGER.addHandler(fh)

    try:
        if add_locstring:
            locstring = make_locstring(mode=locstring_mode)
            LOGGER.log(level, msg, extra={'locstring': locstring})
        else:
            LOGGER.log(level, msg)
    finally:
        if filename is not None:
            LOGGER.removeHandler(fh)
            fh.close()


def make_filehandler(filename, level, formatter, append=False):
    fh = logging.FileHandler(filename, mode=('a' if append else 'w'))
    fh.setLevel(level)
    fh.setFormatter(formatter)
    return fh


def make_locstring(mode='default'):
    assert mode in ['default', 'verbose', 'last']

    loc_list = [
        f'{os.path.basename(finfo.filename)}: {finfo.function} (lineno {finfo.lineno})'
        for finfo in inspect.stack()
        if LOCATION_EXCL_PAT.search(finfo.filename) is None
    ]
    if len(loc_list) == 0:
        return '|'

    if mode == 'verbose':
        return (
            '\n'
            + '\n--> '.join(reversed(loc_list[:3]))
            + '\n'
        )
    elif mode == 'last':
        return loc_list[0] + ' |'
    elif mode == 'default':
        finfo = get_calling_frameinfo()
        return f'{os.path.basename(finfo.filename)}: {finfo.function} (lineno {finfo.lineno}) |'


def make_logformat(level, add_locstring=False):
    """Helper of 'log'"""
    if level == logging.DEBUG:
        levelcol = tools.COLORS['cyan']
    elif level == logging.INFO:
        levelcol = tools.COLORS['green']
    elif level == logging.WARNING:
        levelcol = tools.COLORS['yellow']
    elif level == logging.ERROR:
        levelcol = tools.COLORS['orange']
    else:
        levelcol = tools.COLORS['red']

    levelname = levelcol + '%(levelname)s' + tools.COLORS['end']

    if add_locstring:
        return f'[%(asctime)s.%(msecs)03d {levelname}] %(locstring)s %(message)s'
    else:
        return f'[%(asctime)s.%(msecs)03d {levelname}] %(message)s'


def get_calling_frameinfo():
    """Helper of 'log'. Returns the first frame outside this module."""
    frameinfo_groups = tuple(
        tuple(subiter) for key, subiter in
        itertools.groupby(inspect.stack(), key=(lambda x: x.filename))
    )
    if len(frameinfo_groups) < 2:
        return frameinfo_groups[0][0]
    return frameinfo_groups[1][0]


class LoggingBase:
    def log_debug(self, msg):
        if self.verbose:
            log(msg, level='debug', add_locstring=True, locstring_mode='last')
