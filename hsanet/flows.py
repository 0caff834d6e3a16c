"""
Symbolic flows and the algebra over them.

A compact flow binds every field of the network to a concrete value or to
ANY. A flow is a union of compact flows over the same fields. VOID is the
unsatisfiable compact flow, the result of intersecting disjoint compact
flows; it never appears inside a flow.

Intersection and subset between flows are positional: the i-th compact flow
of one operand is combined with the i-th compact flow of the other.
"""

from hsanet.common import ANY
from hsanet.common import render_value
from hsanet.errors import StructuralError


class _Void(object):
    """The null compact flow"""
    __slots__ = ()

    def __repr__(self):
        return 'cvoid'

    def __reduce__(self):
        return 'VOID'


VOID = _Void()


class CompactFlow(object):
    """One symbolic traffic pattern: a value or ANY per field"""
    __slots__ = ('_bindings', '_index')

    def __init__(self, bindings):
        bindings = tuple((field, value) for field, value in bindings)
        index = {}
        for field, value in bindings:
            if field in index:
                raise StructuralError(
                    "Field '%s' bound twice in compact flow" % field)
            if value is VOID:
                raise StructuralError(
                    "Field '%s' bound to the null flow" % field)
            index[field] = value
        if not bindings:
            raise StructuralError('Compact flow without fields')
        self._bindings = bindings
        self._index = index

    @property
    def fields(self):
        return tuple(field for field, _ in self._bindings)

    @property
    def bindings(self):
        return self._bindings

    def get(self, field):
        if field not in self._index:
            raise StructuralError("Unknown field '%s' for %s" % (field, self))
        return self._index[field]

    __getitem__ = get

    def __contains__(self, field):
        return field in self._index

    def __iter__(self):
        return iter(self._bindings)

    def __len__(self):
        return len(self._bindings)

    def __eq__(self, other):
        if isinstance(other, CompactFlow):
            return self._bindings == other._bindings
        return NotImplemented

    def __hash__(self):
        return hash(self._bindings)

    def __str__(self):
        return '[%s]' % ', '.join(
            '[%s, %s]' % (field, render_value(value))
            for field, value in self._bindings)

    def __repr__(self):
        return 'CompactFlow(%s)' % str(self)


class Flow(object):
    """
    A union of compact flows.

    Duplicates are dropped on construction, keeping the first occurrence.
    The empty flow is no traffic at all.
    """
    __slots__ = ('_cflows',)

    def __init__(self, cflows=()):
        cflows = list(cflows)
        fields = None
        for cflow in cflows:
            if cflow is VOID:
                raise StructuralError('The null compact flow inside a flow')
            if not isinstance(cflow, CompactFlow):
                raise StructuralError('Not a compact flow: %r' % (cflow,))
            if fields is None:
                fields = cflow.fields
            elif cflow.fields != fields:
                raise StructuralError(
                    'Compact flows over different fields: %s and %s'
                    % (fields, cflow.fields))
        self._cflows = tuple(dedupe(cflows))

    @property
    def fields(self):
        """The fields of the elements, None for the empty flow"""
        if not self._cflows:
            return None
        return self._cflows[0].fields

    @property
    def cflows(self):
        return self._cflows

    def is_empty(self):
        return not self._cflows

    def __iter__(self):
        return iter(self._cflows)

    def __len__(self):
        return len(self._cflows)

    def __getitem__(self, i):
        return self._cflows[i]

    def __bool__(self):
        return bool(self._cflows)

    def __eq__(self, other):
        if isinstance(other, Flow):
            return self._cflows == other._cflows
        return NotImplemented

    def __hash__(self):
        return hash(self._cflows)

    def __str__(self):
        return '[%s]' % ', '.join(str(cflow) for cflow in self._cflows)

    def __repr__(self):
        return 'Flow(%s)' % str(self)


def compact_flow(pairs):
    """Build a compact flow from (field, value) pairs or a list of pairs"""
    if isinstance(pairs, CompactFlow):
        return pairs
    return CompactFlow(pairs)


def flow(*cflows):
    """Build a flow from compact flows or lists of (field, value) pairs"""
    return Flow([compact_flow(cflow) for cflow in cflows])


def wildcard(fields):
    """The compact flow matching every packet over the given fields"""
    return CompactFlow((field, ANY) for field in fields)


def dedupe(items):
    """Remove duplicates, keeping the first occurrence"""
    seen = set()
    ret = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        ret.append(item)
    return ret


def remove_value(items, target):
    """Removes all instances of target from items"""
    return [item for item in items if item != target]


EMPTY_FLOW = Flow()


def _check_fields(a, b):
    if a.fields != b.fields:
        raise StructuralError(
            'Compact flows over different fields: %s and %s'
            % (a.fields, b.fields))


def overwrite_field(cflow, field, value):
    """Overwrite a field value in a compact flow"""
    if cflow is VOID:
        return VOID
    if field not in cflow:
        raise StructuralError(
            "Cannot overwrite unknown field '%s' of %s" % (field, cflow))
    return CompactFlow((f, value if f == field else v) for f, v in cflow)


def overwrite_flow(f, field, value):
    """Overwrite a field value in every compact flow of a flow"""
    return Flow(overwrite_field(cflow, field, value) for cflow in f)


def modify(f, bindings):
    """Apply the (field, value) bindings in order"""
    for field, value in bindings:
        f = overwrite_flow(f, field, value)
    return f


def intersect_compact(a, b):
    """
    Compact flow intersection.

    Returns VOID as soon as one field holds two different concrete values.
    """
    if a is VOID or b is VOID:
        return VOID
    _check_fields(a, b)
    bindings = []
    for (field, va), (_, vb) in zip(a, b):
        if va is ANY:
            bindings.append((field, vb))
        elif vb is ANY or va == vb:
            bindings.append((field, va))
        else:
            return VOID
    return CompactFlow(bindings)


def intersect_flow(a, b):
    """
    Positional flow intersection.

    Disjoint pairs are dropped; the result is the empty flow if they all
    are.
    """
    if len(a) != len(b):
        raise StructuralError(
            'Cannot intersect flows of different lengths (%d and %d)'
            % (len(a), len(b)))
    cflows = [intersect_compact(ca, cb) for ca, cb in zip(a, b)]
    return Flow(remove_value(cflows, VOID))


def subset_compact(a, b):
    """True if compact flow a is contained in compact flow b"""
    if a is VOID:
        return True
    if b is VOID:
        return False
    _check_fields(a, b)
    for (_, va), (_, vb) in zip(a, b):
        if vb is not ANY and va != vb:
            return False
    return True


def subset(a, b):
    """True if flow b contains flow a, position by position"""
    if len(a) != len(b):
        return False
    return all(subset_compact(ca, cb) for ca, cb in zip(a, b))


def union(*flows):
    """Reunion of the compact flows of all the given flows"""
    cflows = []
    for f in flows:
        cflows.extend(f)
    return Flow(cflows)
