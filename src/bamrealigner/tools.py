import os
import re
import gzip
import pathlib


#####################
# custom class base #
#####################

def repr_base(obj, keylist, comma_sep_int=False):
    string_list = list()
    for key in keylist:
        val = getattr(obj, key)
        if isinstance(val, int) and comma_sep_int:
            string_list.append(f'{key}={val:,}')
        else:
            string_list.append(f'{key}={repr(val)}')

    return ', '.join(string_list)


##########
# colors #
##########

COLORS = {
    'red':     '\033[38;5;196m',
    'orange':  '\033[38;5;9m',
    'yellow':  '\033[38;5;214m',
    'green':   '\033[38;5;40m',
    'cyan':    '\033[38;5;14m',
    'end':     '\033[0m',
}


#################
# file handling #
#################

GZIP_MAGIC = b'\x1f\x8b'


def check_gzipped(fname):
    with open(fname, 'rb') as f:
        return f.read(2) == GZIP_MAGIC


def check_textfile(fname):
    with open(fname, 'r') as f:
        try:
            _ = f.read(1)
        except UnicodeDecodeError:
            return False
        else:
            return True


def openfile(fname, mode='rt'):
    patstring = r'[rwa]([tb])?'
    if not re.fullmatch(patstring, mode):
        raise Exception(f'Invalid "mode" argument. Allowed pattern: {patstring}')

    if len(mode) == 1:
        mode = mode + 't'

    if (
        (mode[0] in ('w', 'a'))
        and (not os.path.exists(fname))
    ):
        pathlib.Path(fname).touch()

    if check_gzipped(fname):
        return gzip.open(fname, mode)
    elif check_textfile(fname):
        return open(fname, mode)
    else:
        raise Exception(f'"{fname}" is neither plain text nor gzipped.')
