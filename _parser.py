import parsimonious

from _errors import InvalidCeilingError

grammar = parsimonious.Grammar(
    r"""
    # Ordered choice: a bare 'SFC' is the surface, not a height suffixed with SFC.
    ceiling = surface / flight_level / feet

    surface = "SFC"
    flight_level = "FL" _ digits
    # e.g. '1500 ft', '2500FT SFC', '3000'; unit defaults to feet above MSL
    feet = number _ feet_unit? _ sfc_suffix?

    number = ~r"[0-9]+(\.[0-9]+)?"
    digits = ~r"[0-9]{2,}"
    feet_unit = ~r"ft"i
    sfc_suffix = "SFC"
    _ = ~r"[ \t]*"
"""
)


class CeilingVisitor(parsimonious.NodeVisitor):
    """Turns a vertical limit such as 'FL65' or '1500 ft' into a ceiling mapping."""

    grammar = grammar

    def visit_ceiling(self, _, visited_children):
        return visited_children[0]

    def visit_surface(self, *_):
        return {"value": 0, "unit": "FT", "referenceDatum": "GND"}

    def visit_flight_level(self, _, visited_children):
        return {"value": visited_children[2], "unit": "FL", "referenceDatum": "STD"}

    def visit_feet(self, node, visited_children):
        value = visited_children[0]
        # 'SFC' suffix means height above ground
        datum = "GND" if node.children[4].text else "MSL"
        return {"value": value, "unit": "FT", "referenceDatum": datum}

    def visit_number(self, node, _):
        value = float(node.text)
        return int(value) if value.is_integer() else value

    def visit_digits(self, node, _):
        return int(node.text)

    def generic_visit(self, node, visited_children):
        return visited_children or node


def parse_ceiling(definition: str) -> dict:
    """Parse a vertical limit definition.

    Raises InvalidCeilingError if the text is not SFC, feet or a flight level."""
    if not isinstance(definition, str):
        raise InvalidCeilingError(definition)
    text = definition.strip()
    try:
        return CeilingVisitor().parse(text)
    except parsimonious.ParseError as e:
        raise InvalidCeilingError(definition, original=e) from e
