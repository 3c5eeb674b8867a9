"""Hello World -- the simplest skema example.

Mount a one-node schema against a data dict and render it to HTML.

Run:
    python app.py
"""

from skema import mount, render_html

schema = {"$el": "h1", "attrs": {"class": "title"}, "children": ["Hello, ", "$name", "!"]}

view = mount(schema, {"name": "World"})
output = render_html(view.output)


def main() -> None:
    print(output)
    print()

    # Mutating the data re-renders the view
    for name in ["skema", "Schema", "Python"]:
        view.data["name"] = name
        print(render_html(view.output))


if __name__ == "__main__":
    main()
