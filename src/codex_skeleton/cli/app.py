import typer

from codex_skeleton.cli.compress import compress, explain, languages
from codex_skeleton.cli.serve import serve_app

app = typer.Typer(
    name="codex-skeleton",
    help="Codex Skeleton CLI: reduce source files to their signatures.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("compress")(compress)
app.command("languages")(languages)
app.command("explain")(explain)
app.add_typer(serve_app, name="serve")


def main() -> None:
    app()
