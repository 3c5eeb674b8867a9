"""Components -- global registry, local libraries and render_html expansion.

A component is any callable ``component(props, children)`` returning a
renderable. Global components are registered on the Environment; a local
library passed to ``mount`` takes precedence for that schema only.

Run:
    python app.py
"""

from skema import Environment, TextVNode, VNode, render_html


def badge(props, children):
    tone = props.get("tone") or "neutral"
    return VNode("span", {"class": ["badge", f"badge-{tone}"]}, children)


def card(props, children):
    return VNode(
        "article",
        {"class": "card"},
        [VNode("h3", {}, [TextVNode(str(props.get("title", "")))]), *children],
    )


def compact_badge(props, children):
    return VNode("b", {}, children)


env = Environment(components={"Badge": badge})
env.add_component("Card", card)

schema = {
    "$cmp": "Card",
    "props": {"title": "$user.name"},
    "children": [
        {
            "$cmp": "Badge",
            "for": ["role", "$user.roles"],
            "props": {"tone": {"if": "$role === 'admin'", "then": "danger"}},
            "children": "$role",
        }
    ],
}

data = {"user": {"name": "Ada", "roles": ["admin", "author"]}}

view = env.mount(schema, data)
output = render_html(view.output)

compact = env.mount(schema, data, library={"Badge": compact_badge})
compact_output = render_html(compact.output)


def main() -> None:
    print(output)
    print(compact_output)


if __name__ == "__main__":
    main()
