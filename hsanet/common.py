"""
Common definitions shared by the flow algebra, the rules and the engine
"""

from networkx.drawing import nx_pydot


# Default field layout used by the sample networks
PORT_FIELD = 'port'
DST_FIELD = 'dst'
DEFAULT_FIELDS = (PORT_FIELD, DST_FIELD)

# Spelling of the wildcard in declarations and renderings
ANY_NAME = 'any'

# Keys for annotations used in nx graphs
EDGE_TYPE = 'edge_type'
LINK_EDGE = '"link"'
FUNCTION_EDGE = '"function"'
DERIVATION_EDGE = '"derivation"'
RULE_ATTR = 'rule'


class _AnyValue(object):
    """Wildcard field value, matches every concrete value"""
    __slots__ = ()

    def __repr__(self):
        return ANY_NAME

    def __reduce__(self):
        return 'ANY'


ANY = _AnyValue()


def render_value(value):
    """Human readable form of a field value"""
    if value is ANY:
        return ANY_NAME
    return str(value)


def draw(g, out):
    """
    Write the graph in a dot file.

    Nodes may be arbitrary hashable objects (flows for derivation graphs),
    so they are relabeled with their string form and the attributes are
    reduced to what dot understands.
    """
    def _allowed_attrs(attrs):
        new_attrs = {}
        if attrs.get('shape', None):
            new_attrs['shape'] = attrs['shape']
        if attrs.get('style', None):
            new_attrs['style'] = attrs['style']
        if attrs.get(RULE_ATTR, None) is not None:
            new_attrs['label'] = '"%s"' % str(attrs[RULE_ATTR])
        return new_attrs
    clean_g = g.__class__()
    for n, attrs in g.nodes(data=True):
        clean_g.add_node('"%s"' % str(n), **_allowed_attrs(attrs))
    for src, dst, attrs in g.edges(data=True):
        clean_g.add_edge('"%s"' % str(src), '"%s"' % str(dst),
                         **_allowed_attrs(attrs))
    nx_pydot.write_dot(clean_g, out)
