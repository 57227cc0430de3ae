"""
Pennant parser: turn an argument vector into setter calls and positionals.

Token classes
- positional: empty, not starting with '-', or exactly '-'.
- terminator: exactly '--'; every later token is positional.
- long flag: '--name', '--name=value', '--no-name'.
- shorthand cluster: '-f', '-fvalue', '-f=value', '-f value', '-abc'.

Value resolution (long flags), first match wins
  1. '=value' suffix (forbidden together with a requested negation).
  2. boolean flag → "true", or "false" when '--no-<name>' was used.
  3. optional-argument flag → "".
  4. next token, when it does not start with '-'.
  5. otherwise: MissingArgumentError.

Value resolution (one shorthand character), first match wins
  1. '=value' right after the character ('-f=' gives "").
  2. rest of the cluster, when its first character is not a registered
     shorthand and (the flag is not boolean or the rest is a boolean literal).
  3. next token, when the cluster is exhausted, the token does not start
     with '-' and (the flag is not boolean or the token is a boolean literal).
  4. boolean or optional-argument flag → "".
  5. otherwise: MissingArgumentError.

Unknown flags
- With AllowList.unknown_flags, unknown tokens are recorded instead of
  failing. Without '=value', the next token is dropped as the unknown flag's
  value when it does not start with '-' and at least one more token follows.

The parser only reads the FlagSet; the FlagSet copies args,
args_len_at_dash and unknown_flags back once the run ends.
"""
from collections import deque

from .faults import *
from .values import is_bool


def _is_value(token, /):
    return not token.startswith("-")


class Parser:
    """
    One parse pass over an argument vector.

    Attributes
    - flagset: the FlagSet providing lookups, policy and output.
    - setter: callable(flag, text) invoked for every resolved value.
    - args: positional arguments collected so far.
    - args_len_at_dash: len(args) when '--' was met, or None.
    - unknown_flags: unknown flag tokens (only with the unknown-flag allowance).
    """

    def __init__(self, flagset, setter, /):
        self.flagset = flagset
        self.setter = setter
        self.tokens = deque()
        self.args = []
        self.args_len_at_dash = None
        self.unknown_flags = []

    def run(self, arguments, /):
        """
        Consume every token, then validate required flags.

        Raises
        - FlagParseError subclasses for user input problems.
        - HelpRequested for an unregistered '--help' or '-h'.
        """
        self.tokens = deque(arguments)

        while self.tokens:
            token = self.tokens.popleft()

            if not token.startswith("-") or token == "-":
                self.args.append(token)
                if not self.flagset.interspersed:
                    self._drain()
                    break
                continue

            if token == "--":
                self.args_len_at_dash = len(self.args)
                self._drain()
                break

            if token.startswith("--"):
                self._parse_long(token)
            else:
                cluster = token[1:]
                while cluster:
                    cluster = self._parse_shorthand(cluster)

        self.flagset.validate()

    def _drain(self):
        self.args.extend(self.tokens)
        self.tokens.clear()

    def _swallow(self):
        # keep the last token: it is more likely a positional than a value
        if len(self.tokens) > 1 and _is_value(self.tokens[0]):
            self.tokens.popleft()

    def _parse_long(self, token, /):
        if not (body := token[2:]) or body[0] in "-=":
            raise BadFlagSyntaxError("bad flag syntax: %s" % token, token=token)

        name, separator, value = body.partition("=")
        flag = self.flagset.lookup(name)

        negated = False
        if flag is None and name.startswith("no-") and len(name) > 3:
            target = self.flagset.lookup(name[3:])
            if target is not None and target.negatable and target.is_boolean:
                flag, name, negated = target, name[3:], True

        if flag is None or flag.shorthand_only:
            if flag is None and name == "help" and self.flagset.builtin_help:
                raise HelpRequested()
            if self.flagset.allow.unknown_flags:
                self.unknown_flags.append(token)
                if not separator:
                    self._swallow()
                return
            raise UnknownFlagError(
                "unknown flag: --%s" % name,
                name=name,
                hint="use '-%s' for this flag" % flag.shorthand if flag is not None else None
            )

        if separator:
            if negated:
                raise FlagValueForbiddenError("flag cannot have a value: %s" % token, token=token)
            text = value
        elif flag.is_boolean:
            text = "false" if negated else "true"
        elif flag.is_optional:
            text = ""
        elif self.tokens and self.tokens[0] and _is_value(self.tokens[0]):
            text = self.tokens.popleft()
        else:
            raise MissingArgumentError("flag needs an argument: %s" % token, flag=flag)

        self.setter(flag, text)

    def _parse_shorthand(self, cluster, /):
        """
        Handle the first character of a shorthand cluster; return what is left.
        """
        char, rest = cluster[0], cluster[1:]
        flag = self.flagset.lookup_shorthand(char)

        if flag is None:
            if char == "h" and self.flagset.builtin_help:
                raise HelpRequested()
            if self.flagset.allow.unknown_flags:
                if len(cluster) > 2:
                    self.unknown_flags.append("-" + cluster)
                    return ""
                self.unknown_flags.append("-" + char)
                if not rest:
                    self._swallow()
                return rest
            flag = self.flagset.lookup(char)
            if flag is None or (flag.shorthand is not None and flag.shorthand != char):
                raise UnknownFlagError(
                    "unknown shorthand flag: %r in -%s" % (char, cluster),
                    name=char,
                    code=FaultCode.UNKNOWN_SHORTHAND,
                    title="unknown shorthand flag"
                )

        if rest.startswith("="):
            text, rest = rest[1:], ""
        elif rest and self.flagset.lookup_shorthand(rest[0]) is None and (not flag.is_boolean or is_bool(rest)):
            text, rest = rest, ""
        elif (
                not rest
                and self.tokens
                and self.tokens[0]
                and _is_value(self.tokens[0])
                and (not flag.is_boolean or is_bool(self.tokens[0]))
        ):
            text = self.tokens.popleft()
        elif flag.is_boolean or flag.is_optional:
            text = ""
        else:
            raise MissingArgumentError("flag needs an argument: %r in -%s" % (char, cluster), flag=flag)

        if flag.shorthand_deprecated is not None and flag.shorthand is not None:
            self.flagset.trigger(DeprecatedShorthandWarning(
                "Flag shorthand -%s has been deprecated, %s" % (flag.shorthand, flag.shorthand_deprecated),
                flag=flag
            ))

        self.setter(flag, text)
        return rest


__all__ = (
    "Parser",
)
