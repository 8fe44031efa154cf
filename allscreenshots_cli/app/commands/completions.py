from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from rich.console import Console

from allscreenshots_cli.app.core.errors import InputValidationError
from allscreenshots_cli.app.core.settings import RuntimeConfig

PROG = "allscreenshots"
SHELLS = ("bash", "zsh", "fish", "powershell", "elvish")
SHELL_ALIASES = {"ps": "powershell"}

INSTRUCTIONS = {
    "bash": [
        "# Add to ~/.bashrc or ~/.bash_profile:",
        f'eval "$({PROG} completions bash)"',
        "",
        "# Or save to a file:",
        f"{PROG} completions bash > /etc/bash_completion.d/{PROG}",
    ],
    "zsh": [
        "# Add to ~/.zshrc:",
        f'eval "$({PROG} completions zsh)"',
        "",
        "# Make sure completions are enabled in ~/.zshrc:",
        "autoload -Uz compinit && compinit",
    ],
    "fish": [
        "# Save to fish completions directory:",
        f"{PROG} completions fish > ~/.config/fish/completions/{PROG}.fish",
    ],
    "powershell": [
        "# Add to your PowerShell profile:",
        f"{PROG} completions powershell | Out-String | Invoke-Expression",
        "",
        "# Or add to $PROFILE:",
        f"{PROG} completions powershell >> $PROFILE",
    ],
    "elvish": [
        "# Add to ~/.elvish/rc.elv:",
        f"eval ({PROG} completions elvish | slurp)",
    ],
}


@dataclass
class CompletionNode:
    path: str
    commands: List[Tuple[str, str]] = field(default_factory=list)
    options: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def words(self) -> List[str]:
        return [name for name, _ in self.commands] + [flag for flag, _ in self.options]


def register(subparsers: argparse._SubParsersAction, root: argparse.ArgumentParser) -> None:
    parser = subparsers.add_parser("completions", help="Generate shell completions")
    parser.add_argument("shell", metavar="SHELL", help=f"Shell to generate completions for ({', '.join(SHELLS)})")
    parser.add_argument("--instructions", action="store_true", help="Show installation instructions")
    parser.set_defaults(handler=execute, root_parser=root)


def parse_shell(name: str) -> str:
    shell = name.lower()
    shell = SHELL_ALIASES.get(shell, shell)
    if shell not in SHELLS:
        raise InputValidationError(f"Unknown shell '{name}'. Supported: {', '.join(SHELLS)}")
    return shell


def command_tree(parser: argparse.ArgumentParser) -> Dict[str, CompletionNode]:
    """Flatten the parser into completion nodes keyed by command path (``""``, ``"jobs"``, ``"jobs result"``)."""
    nodes: Dict[str, CompletionNode] = {}
    _walk(parser, "", nodes)
    return nodes


def _walk(parser: argparse.ArgumentParser, path: str, nodes: Dict[str, CompletionNode]) -> None:
    node = nodes[path] = CompletionNode(path)
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            helps = {choice.dest: choice.help or "" for choice in action._choices_actions}
            for name, sub in action.choices.items():
                node.commands.append((name, helps.get(name, "")))
                _walk(sub, f"{path} {name}".strip(), nodes)
        elif action.option_strings and action.help is not argparse.SUPPRESS:
            node.options.extend((flag, action.help or "") for flag in action.option_strings)


def _quote(text: str) -> str:
    return "'" + text.replace("'", "'\\''") + "'"


def _literal(word: str) -> str:
    # PowerShell and Elvish escape a quote by doubling it
    return "'" + word.replace("'", "''") + "'"


def bash_script(nodes: Dict[str, CompletionNode]) -> str:
    cases = "\n".join(f'        "{path}") echo {_quote(" ".join(node.words))} ;;' for path, node in nodes.items())
    return f"""_{PROG}_words() {{
    case "$1" in
{cases}
        *) return 1 ;;
    esac
}}

_{PROG}() {{
    local cur="${{COMP_WORDS[COMP_CWORD]}}" path="" word i
    for ((i = 1; i < COMP_CWORD; i++)); do
        word="${{COMP_WORDS[i]}}"
        [[ "$word" == -* ]] && continue
        if _{PROG}_words "${{path:+$path }}$word" >/dev/null; then
            path="${{path:+$path }}$word"
        fi
    done
    COMPREPLY=($(compgen -W "$(_{PROG}_words "$path")" -- "$cur"))
}}

complete -F _{PROG} {PROG}
"""


def zsh_script(nodes: Dict[str, CompletionNode]) -> str:
    return "autoload -U +X bashcompinit && bashcompinit\n\n" + bash_script(nodes)


def fish_script(nodes: Dict[str, CompletionNode]) -> str:
    lines = [f"complete -c {PROG} -f"]
    for path, node in nodes.items():
        if path:
            parts = path.split()
            condition = " ".join(f"; and __fish_seen_subcommand_from {part}" for part in parts)
            condition = f"-n 'true{condition}'"
        else:
            condition = "-n '__fish_use_subcommand'"
        for name, help_text in node.commands:
            lines.append(f"complete -c {PROG} {condition} -a {name} -d {_quote(help_text)}")
        for flag, help_text in node.options:
            switch = f"-l {flag[2:]}" if flag.startswith("--") else f"-s {flag[1:]}"
            lines.append(f"complete -c {PROG} {condition} {switch} -d {_quote(help_text)}")
    return "\n".join(lines) + "\n"


def powershell_script(nodes: Dict[str, CompletionNode]) -> str:
    entries = "\n".join(
        f"        '{path}' = @({', '.join(_literal(word) for word in node.words)})" for path, node in nodes.items()
    )
    return f"""Register-ArgumentCompleter -Native -CommandName '{PROG}' -ScriptBlock {{
    param($wordToComplete, $commandAst, $cursorPosition)
    $tree = @{{
{entries}
    }}
    $path = ''
    foreach ($element in $commandAst.CommandElements | Select-Object -Skip 1) {{
        $word = $element.ToString()
        if ($word -eq $wordToComplete -or $word.StartsWith('-')) {{ continue }}
        $candidate = ($path + ' ' + $word).Trim()
        if ($tree.ContainsKey($candidate)) {{ $path = $candidate }}
    }}
    $tree[$path] | Where-Object {{ $_ -like "$wordToComplete*" }} | ForEach-Object {{
        [System.Management.Automation.CompletionResult]::new($_, $_, 'ParameterValue', $_)
    }}
}}
"""


def elvish_script(nodes: Dict[str, CompletionNode]) -> str:
    entries = "\n".join(
        f"    &'{path}'=[{' '.join(_literal(word) for word in node.words)}]" for path, node in nodes.items()
    )
    return f"""use str

var {PROG}-tree = [
{entries}
]

set edit:completion:arg-completer[{PROG}] = {{|@words|
    var path = ''
    for word $words[1..-1] {{
        if (str:has-prefix $word -) {{ continue }}
        var candidate = (str:trim-space $path' '$word)
        if (has-key ${PROG}-tree $candidate) {{ set path = $candidate }}
    }}
    all ${PROG}-tree[$path]
}}
"""


GENERATORS = {
    "bash": bash_script,
    "zsh": zsh_script,
    "fish": fish_script,
    "powershell": powershell_script,
    "elvish": elvish_script,
}


def generate(shell: str, parser: argparse.ArgumentParser) -> str:
    return GENERATORS[parse_shell(shell)](command_tree(parser))


async def execute(args: argparse.Namespace, config: RuntimeConfig, console: Console) -> None:
    shell = parse_shell(args.shell)
    if args.instructions:
        console.out("\n".join(INSTRUCTIONS[shell]), highlight=False)
        return
    console.out(generate(shell, args.root_parser), highlight=False, end="")
