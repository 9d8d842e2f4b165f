import re
import enum


class CigarOp(enum.IntEnum):
    """CIGAR operation kinds. Values are the BAM opcodes used by pysam."""
    MATCH = 0
    INS = 1
    DEL = 2
    REF_SKIP = 3
    SOFT_CLIP = 4
    HARD_CLIP = 5
    PAD = 6
    EQUAL = 7
    DIFF = 8

    @property
    def opstring(self):
        return CIGAROPDICT_REV[self]

    @property
    def consumes_ref(self):
        return CIGAR_WALK_DICT[self][0]

    @property
    def consumes_query(self):
        return CIGAR_WALK_DICT[self][1]


CIGAROPDICT_ITEMS = [
    ("M", CigarOp.MATCH),
    ("I", CigarOp.INS),
    ("D", CigarOp.DEL),
    ("N", CigarOp.REF_SKIP),
    ("S", CigarOp.SOFT_CLIP),
    ("H", CigarOp.HARD_CLIP),
    ("P", CigarOp.PAD),
    ("=", CigarOp.EQUAL),
    ("X", CigarOp.DIFF),
]
CIGAROPDICT = dict(CIGAROPDICT_ITEMS)
CIGAROPDICT_REV = dict((x[1], x[0]) for x in CIGAROPDICT_ITEMS)
# any single non-digit is captured so that unknown ops can be reported
CIGARPAT = re.compile(r'([0-9]+)([^0-9])')
CIGAR_WALK_DICT = { # (target, query)
    CigarOp.MATCH: (True, True),
    CigarOp.INS: (False, True),
    CigarOp.DEL: (True, False),
    CigarOp.REF_SKIP: (True, False),
    CigarOp.SOFT_CLIP: (False, True),
    CigarOp.HARD_CLIP: (False, False),
    CigarOp.PAD: (False, False),
    CigarOp.EQUAL: (True, True),
    CigarOp.DIFF: (True, True),
}
CIGAROPS_ALIGNED = {CigarOp.MATCH, CigarOp.EQUAL, CigarOp.DIFF}
CIGAROPS_TARGETONLY = {CigarOp.DEL, CigarOp.REF_SKIP}


class UnknownCigarOpError(Exception):
    pass


def to_cigarop(opcode):
    """Accepts a BAM opcode (int), an op string ('M', 'I', ...) or a CigarOp."""
    if isinstance(opcode, CigarOp):
        return opcode
    elif isinstance(opcode, str):
        try:
            return CIGAROPDICT[opcode]
        except KeyError:
            raise UnknownCigarOpError(f'Unknown CIGAR operation: {opcode!r}')
    else:
        try:
            return CigarOp(opcode)
        except ValueError:
            raise UnknownCigarOpError(f'Unknown CIGAR opcode: {opcode!r}')


def cigarstring_to_cigartuples(cigarstring):
    """Returns a list of (opcode, count), opcodes not yet validated. 
    Text which does not fit the CIGAR grammar raises ValueError.
    """
    if CIGARPAT.sub('', cigarstring) != '':
        raise ValueError(f'Invalid CIGAR string: {cigarstring!r}')

    result = list()
    for (count, opstring) in CIGARPAT.findall(cigarstring):
        result.append((opstring, int(count)))
    return result


def cigartuples_to_cigarstring(cigartuples):
    buffer = list()
    for opcode, count in cigartuples:
        buffer.append(str(count))
        buffer.append(to_cigarop(opcode).opstring)
    return "".join(buffer)


def get_ref_length(cigartuples):
    return sum(
        count for opcode, count in cigartuples 
        if to_cigarop(opcode).consumes_ref
    )


def get_query_length(cigartuples):
    return sum(
        count for opcode, count in cigartuples 
        if to_cigarop(opcode).consumes_query
    )
