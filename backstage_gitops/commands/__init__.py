# /*
# Copyright 2026 The Backstage GitOps Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Typer subcommands and the error-to-exit-code mapping they share."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import sh
import typer
from pydantic import ValidationError

from backstage_gitops import console, logger
from backstage_gitops.constants import EXIT_FAILURE, EXIT_INTERRUPTED
from backstage_gitops.errors import BootstrapAborted, BootstrapError, MissingPrerequisiteError, StepFailedError
from backstage_gitops.sequencer import StepState
from backstage_gitops.utils import error_text


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print a BootstrapError (or interrupt) and exit with its code."""
    try:
        yield
    except BootstrapAborted as err:
        console.print(f"[yellow]⚠️  {err}[/yellow]")
        raise typer.Exit(err.exit_code) from err
    except MissingPrerequisiteError as err:
        console.print(f"[red]❌ {err}[/red]")
        for hint in err.install_hints():
            console.print(f"   Install {hint}")
        raise typer.Exit(err.exit_code) from err
    except StepFailedError as err:
        console.print(f"[red]❌ {err}[/red]")
        pending = [report.name for report in err.reports if report.state is StepState.PENDING]
        if pending:
            console.print(f"[yellow]   Not attempted: {', '.join(pending)}[/yellow]")
        raise typer.Exit(err.exit_code) from err
    except BootstrapError as err:
        console.print(f"[red]❌ {err}[/red]")
        raise typer.Exit(err.exit_code) from err
    except ValidationError as err:
        console.print("[red]❌ Invalid configuration:[/red]")
        console.print(str(err), markup=False, highlight=False)
        raise typer.Exit(EXIT_FAILURE) from err
    except sh.ErrorReturnCode as err:
        console.print(f"[red]❌ {err.full_cmd} failed: {error_text(err)}[/red]")
        raise typer.Exit(EXIT_FAILURE) from err
    except KeyboardInterrupt as err:
        logger.debug("Interrupted by operator")
        console.print("[yellow]⚠️  Interrupted[/yellow]")
        raise typer.Exit(EXIT_INTERRUPTED) from err
