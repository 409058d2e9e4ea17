from jinja2 import Environment, PackageLoader, select_autoescape

template_env = Environment(
    loader=PackageLoader("ikimina", "templates"),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_template(template_filename, **context):
    return template_env.get_template(template_filename).render(**context)
