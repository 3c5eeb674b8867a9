"""Counter -- reactive attributes, conditionals and listeners.

A single schema compiled once; every change to ``count`` re-renders the
view exactly once, and subscribers receive the new output.

Run:
    python app.py
"""

from skema import Environment, batch, render_html

env = Environment()

schema = {
    "$el": "div",
    "attrs": {
        "data-count": "$count",
        "class": {"if": "$count > 1", "then": "counter many", "else": "counter"},
    },
    "children": [
        {"$el": "strong", "children": "$count"},
        " ",
        {"if": "$count > 1", "then": "items", "else": "item"},
    ],
}

view = env.mount(schema, {"count": 1})
history: list[str] = []
view.subscribe(lambda output: history.append(render_html(output)))


def increment(by: int = 1) -> None:
    view.data["count"] += by


def reset() -> None:
    # Two writes, one re-render
    with batch():
        view.data["count"] = 0
        view.data["count"] = 1


def main() -> None:
    print(render_html(view.output))
    for _ in range(3):
        increment()
    reset()
    for line in history:
        print(line)


if __name__ == "__main__":
    main()
