"""Todo list -- loops, keys, let bindings and guards.

Shows ``for`` with a key name, a ``let`` binding shared by every row, a
guard that hides finished items, and a loop over a count.

Run:
    python app.py
"""

from skema import Environment, render_html

env = Environment()

schema = {
    "$el": "section",
    "let": {"done_mark": "[x]", "open_mark": "[ ]"},
    "children": [
        {"$el": "h2", "children": "$title"},
        {
            "$el": "ol",
            "children": [
                {
                    "$el": "li",
                    "for": ["todo", "index", "$todos"],
                    "if": "$show_done || !$todo.done",
                    "attrs": {"data-index": "$index"},
                    "children": [
                        {"if": "$todo.done", "then": "$done_mark", "else": "$open_mark"},
                        " ",
                        "$todo.text",
                    ],
                }
            ],
        },
        {"$el": "p", "if": "$footer", "children": [{"$el": "i", "for": ["n", "$stars"], "children": "*"}]},
    ],
}

data = {
    "title": "Today",
    "show_done": True,
    "footer": True,
    "stars": 3,
    "todos": [
        {"text": "Write schema", "done": True},
        {"text": "Mount view", "done": False},
    ],
}

view = env.mount(schema, data)


def add(text: str) -> None:
    view.data["todos"].append({"text": text, "done": False})


def complete(index: int) -> None:
    view.data["todos"][index]["done"] = True


def main() -> None:
    print(render_html(view.output))
    add("Ship it")
    complete(1)
    view.data["show_done"] = False
    print(render_html(view.output))


if __name__ == "__main__":
    main()
