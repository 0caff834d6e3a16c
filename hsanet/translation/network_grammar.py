import logging

from pyparsing import Group
from pyparsing import Keyword
from pyparsing import Literal
from pyparsing import OneOrMore
from pyparsing import Optional
from pyparsing import ParseBaseException
from pyparsing import Regex
from pyparsing import ZeroOrMore
from pyparsing import c_style_comment

from hsanet.common import DEFAULT_FIELDS
from hsanet.errors import DeclarationError
from hsanet.rules import GenericRule
from hsanet.translation.declaration import FieldsDeclaration
from hsanet.translation.declaration import Network
from hsanet.translation.declaration import parse_binding
from hsanet.translation.declaration import parse_compact_flow
from hsanet.translation.declaration import parse_fields
from hsanet.translation.declaration import parse_flow
from hsanet.translation.declaration import parse_generic_rule
from hsanet.translation.declaration import parse_value
from hsanet.translation.declaration import parse_wire_rule


logger = logging.getLogger(__name__)


name = Regex(r'[a-z][a-zA-Z0-9_]*')
atom = Regex(r'[a-zA-Z0-9_]+')
value = atom.copy().set_parse_action(parse_value)
leftbracket = Literal('(').suppress()
rightbracket = Literal(')').suppress()
leftsquare = Literal('[').suppress()
rightsquare = Literal(']').suppress()
comma = Literal(',').suppress()
dot = Literal('.').suppress()
comment = Regex(r'%.*')
directive = Regex(r':-[^.]*\.')

binding = (leftsquare + name + comma + value + rightsquare).set_parse_action(parse_binding)
bindings = Group(leftsquare + Optional(binding + ZeroOrMore(comma + binding)) + rightsquare)
compact_flow = (leftsquare + binding + ZeroOrMore(comma + binding) + rightsquare).set_parse_action(parse_compact_flow)
flow = (leftsquare + Optional(compact_flow + ZeroOrMore(comma + compact_flow)) + rightsquare).set_parse_action(parse_flow)

wire_rule = (Keyword('wireRule').suppress() + leftbracket + value + comma + value + rightbracket + dot).set_parse_action(parse_wire_rule)
generic_rule = (Keyword('genericRule').suppress() + leftbracket + flow + comma + flow + comma + bindings + rightbracket + dot).set_parse_action(parse_generic_rule)
fields = (Keyword('fields').suppress() + leftbracket + leftsquare + name + ZeroOrMore(comma + name) + rightsquare + rightbracket + dot).set_parse_action(parse_fields)
network = OneOrMore(fields | wire_rule | generic_rule)
network.ignore(comment)
network.ignore(c_style_comment)
network.ignore(directive)


def _infer_fields(declarations):
  for decl in declarations:
    if isinstance(decl, FieldsDeclaration):
      return decl.names
  for decl in declarations:
    if isinstance(decl, GenericRule):
      for f in (decl.match, decl.filter):
        if not f.is_empty():
          return f.fields
  return DEFAULT_FIELDS


def to_network(declarations):
  declarations = list(declarations)
  field_decls = [decl for decl in declarations if isinstance(decl, FieldsDeclaration)]
  if len(field_decls) > 1:
    raise DeclarationError('Fields declared %d times' % len(field_decls))
  rules = [decl for decl in declarations if not isinstance(decl, FieldsDeclaration)]
  net = Network(tuple(_infer_fields(declarations)), tuple(rules))
  logger.info('Loaded %d rules over fields %s', len(net.rules), net.fields)
  return net


def parse_network(text):
  try:
    parsed = network.parse_string(text, parse_all=True)
  except ParseBaseException as e:
    raise DeclarationError('Malformed network declaration: %s' % e.msg, e.line, e.lineno, e.col)
  return to_network(parsed)


def parse_network_file(filename):
  with open(filename) as f:
    return parse_network(f.read())
