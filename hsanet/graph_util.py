"""
Various functions to work with the topology and derivation graphs
"""

import networkx as nx

from hsanet.common import ANY
from hsanet.common import EDGE_TYPE
from hsanet.common import FUNCTION_EDGE
from hsanet.common import LINK_EDGE
from hsanet.common import RULE_ATTR
from hsanet.rules import WireRule
from hsanet.rules import rule_to_str


def _pinned_ports(f, port_field):
    """Ports a flow is restricted to, None if some compact flow allows ANY"""
    ports = set()
    for cflow in f:
        port = cflow.get(port_field)
        if port is ANY:
            return None
        ports.add(port)
    return ports


def topology_graph(rule_set):
    """
    Port to port graph of a rule set.

    Wire rules become link edges. A generic rule becomes function edges
    when its match pins the port and its overwrite sets it; other generic
    rules do not move traffic between known ports and are left out.
    """
    g = nx.DiGraph()
    port_field = rule_set.port_field
    # Without a port field there are no wire rules and no pinned ports
    if port_field not in rule_set.fields:
        return g
    for declared, rule in rule_set.pairs():
        if isinstance(declared, WireRule):
            g.add_edge(declared.src_port, declared.dst_port,
                       **{EDGE_TYPE: LINK_EDGE, RULE_ATTR: rule_to_str(declared)})
            continue
        src_ports = _pinned_ports(rule.match, port_field)
        dst_ports = [value for field, value in rule.overwrite
                     if field == port_field and value is not ANY]
        if not src_ports or not dst_ports:
            continue
        # The last binding of a field wins
        dst = dst_ports[-1]
        for src in sorted(src_ports, key=str):
            g.add_edge(src, dst,
                       **{EDGE_TYPE: FUNCTION_EDGE, RULE_ATTR: rule_to_str(declared)})
    return g


def has_loop(g):
    """True if the graph has a cycle, self loops included"""
    return not nx.is_directed_acyclic_graph(g)


def find_loops(g):
    """All the elementary cycles of the graph"""
    return list(nx.simple_cycles(g))


def connected_ports(g, port):
    """Ports reachable from port over the topology graph"""
    if port not in g:
        return set()
    return nx.descendants(g, port)
