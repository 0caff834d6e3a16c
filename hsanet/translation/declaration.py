from collections import namedtuple

from hsanet.common import ANY
from hsanet.common import ANY_NAME
from hsanet.flows import CompactFlow
from hsanet.flows import Flow
from hsanet.rules import GenericRule
from hsanet.rules import WireRule


FieldsDeclaration = namedtuple('FieldsDeclaration', ['names'])

# What a declaration file describes: the field layout and the rules in order
Network = namedtuple('Network', ['fields', 'rules'])


def to_value(name):
  if name == ANY_NAME:
    return ANY
  return name


def parse_value(parsed_tokens):
  return to_value(parsed_tokens[0])


def parse_binding(parsed_tokens):
  return [(parsed_tokens[0], parsed_tokens[1])]


def parse_compact_flow(parsed_tokens):
  return CompactFlow(parsed_tokens)


def parse_flow(parsed_tokens):
  return Flow([cflow for cflow in parsed_tokens])


def parse_wire_rule(parsed_tokens):
  return WireRule(parsed_tokens[0], parsed_tokens[1])


def parse_generic_rule(parsed_tokens):
  match, flt, overwrite = parsed_tokens
  return GenericRule(match, flt, tuple(binding for binding in overwrite))


def parse_fields(parsed_tokens):
  return FieldsDeclaration(tuple(parsed_tokens))
