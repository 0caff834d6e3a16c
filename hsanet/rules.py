"""
Network rules and their application to flows.

A generic rule matches a flow when the flow is a subset of its match flow,
narrows it by intersecting with its filter flow and then overwrites some
fields. A wire rule moves traffic from one port to another and is lowered to
a generic rule once, when the rule set is built.
"""

import logging

from collections import namedtuple

from hsanet.common import ANY
from hsanet.common import DEFAULT_FIELDS
from hsanet.common import PORT_FIELD
from hsanet.common import render_value
from hsanet.errors import StructuralError
from hsanet.flows import EMPTY_FLOW
from hsanet.flows import CompactFlow
from hsanet.flows import Flow
from hsanet.flows import dedupe
from hsanet.flows import intersect_flow
from hsanet.flows import modify
from hsanet.flows import overwrite_field
from hsanet.flows import subset
from hsanet.flows import wildcard


logger = logging.getLogger(__name__)


# Traffic on src_port shows up on dst_port
WireRule = namedtuple('WireRule', ['src_port', 'dst_port'])

# Match and filter are flows, overwrite is a sequence of (field, value)
GenericRule = namedtuple('GenericRule', ['match', 'filter', 'overwrite'])


def rule_to_str(rule):
    """Render a rule the way it is declared"""
    if isinstance(rule, WireRule):
        return 'wireRule(%s, %s)' % rule
    ovr = ', '.join('[%s, %s]' % (field, render_value(value))
                    for field, value in rule.overwrite)
    return 'genericRule(%s, %s, [%s])' % (rule.match, rule.filter, ovr)


def lower_wire_rule(rule, fields, port_field=PORT_FIELD):
    """Express a wire rule as a generic rule over the given fields"""
    if port_field not in fields:
        raise StructuralError(
            "Wire rule %s needs the field '%s' in %s"
            % (rule_to_str(rule), port_field, tuple(fields)))
    match = overwrite_field(wildcard(fields), port_field, rule.src_port)
    return GenericRule(Flow([match]), Flow([wildcard(fields)]),
                       ((port_field, rule.dst_port),))


def apply_rule(rule, in_flow, port_field=PORT_FIELD):
    """
    Apply one rule to a flow.

    Returns the empty flow when the rule does not fire or when the filter
    drops every compact flow.
    """
    if in_flow.is_empty():
        return EMPTY_FLOW
    if isinstance(rule, WireRule):
        rule = lower_wire_rule(rule, in_flow.fields, port_field)
    if not subset(in_flow, rule.match):
        return EMPTY_FLOW
    if len(in_flow) != len(rule.filter):
        return EMPTY_FLOW
    filtered = intersect_flow(in_flow, rule.filter)
    if filtered.is_empty():
        return EMPTY_FLOW
    return modify(filtered, rule.overwrite)


def apply_all(rules, in_flow, port_field=PORT_FIELD):
    """
    Apply every rule to the same input flow.

    Returns the distinct non-empty outputs, one flow per firing rule.
    """
    outputs = []
    for rule in rules:
        out = apply_rule(rule, in_flow, port_field)
        if not out.is_empty():
            outputs.append(out)
    return dedupe(outputs)


class RuleSet(object):
    """
    A validated, immutable set of rules over a fixed field layout.

    Wire rules are lowered to generic rules on construction, the declared
    form is kept for rendering and for the topology graph.
    """

    def __init__(self, rules, fields=DEFAULT_FIELDS, port_field=PORT_FIELD):
        self.fields = tuple(fields)
        self.port_field = port_field
        if not self.fields:
            raise StructuralError('A rule set needs at least one field')
        if len(set(self.fields)) != len(self.fields):
            raise StructuralError('Duplicate fields in %s' % (self.fields,))
        self.declared = tuple(rules)
        lowered = []
        for rule in self.declared:
            if isinstance(rule, WireRule):
                lowered.append(lower_wire_rule(rule, self.fields, port_field))
            elif isinstance(rule, GenericRule):
                lowered.append(self._check_generic(rule))
            else:
                raise StructuralError('Not a rule: %r' % (rule,))
        self.rules = tuple(lowered)
        logger.debug('Rule set over %s with %d rules',
                     self.fields, len(self.rules))

    @classmethod
    def from_network(cls, network, port_field=PORT_FIELD):
        """Build a rule set from parsed network declarations"""
        return cls(network.rules, network.fields, port_field)

    def _check_generic(self, rule):
        for name, f in (('match', rule.match), ('filter', rule.filter)):
            if not isinstance(f, Flow):
                raise StructuralError(
                    'The %s of %s is not a flow' % (name, rule_to_str(rule)))
            if not f.is_empty() and f.fields != self.fields:
                raise StructuralError(
                    'The %s of %s is over %s, expected %s'
                    % (name, rule_to_str(rule), f.fields, self.fields))
        if (not rule.match.is_empty() and not rule.filter.is_empty()
                and len(rule.match) != len(rule.filter)):
            raise StructuralError(
                'The match of %s has %d compact flows, its filter %d'
                % (rule_to_str(rule), len(rule.match), len(rule.filter)))
        overwrite =tuple((field, value) for field, value in rule.overwrite)
        for field, _ in overwrite:
            if field not in self.fields:
                raise StructuralError(
                    "Unknown field '%s' overwritten by %s"
                    % (field, rule_to_str(rule)))
        return GenericRule(rule.match, rule.filter, overwrite)

    def check_flow(self, f):
        """Raise StructuralError if the flow is not over this rule set's fields"""
        if not f.is_empty() and f.fields != self.fields:
            raise StructuralError(
                'Flow %s is over %s, expected %s' % (f, f.fields, self.fields))

    def source(self, port, **values):
        """The flow entering at port, other fields given or ANY"""
        bindings = []
        for field in self.fields:
            if field == self.port_field:
                bindings.append((field, port))
            else:
                bindings.append((field, values.pop(field, ANY)))
        if values:
            raise StructuralError(
                'Unknown fields %s, expected %s'
                % (sorted(values), self.fields))
        return Flow([CompactFlow(bindings)])

    def apply(self, in_flow):
        """Apply every rule of the set to the flow"""
        return apply_all(self.rules, in_flow, self.port_field)

    def pairs(self):
        """Iterate over (declared rule, lowered rule)"""
        return zip(self.declared, self.rules)

    def values(self):
        """Concrete values mentioned by the rules, per field"""
        domain = dict((field, set()) for field in self.fields)
        for rule in self.rules:
            for f in (rule.match, rule.filter):
                for cflow in f:
                    for field, value in cflow:
                        if value is not ANY:
                            domain[field].add(value)
            for field, value in rule.overwrite:
                if value is not ANY:
                    domain[field].add(value)
        return domain

    def __iter__(self):
        return iter(self.rules)

    def __len__(self):
        return len(self.rules)

    def __str__(self):
        return '\n'.join(rule_to_str(rule) + '.' for rule in self.declared)
