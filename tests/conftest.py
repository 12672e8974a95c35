# File: conftest.py
# Directory: tests
# Purpose: Shared test fixtures: a throwaway Perl library tree, settings that
#          point at it, and a minimal FastAPI app with the POD router mounted.
#
# Notes:
# - Perl itself is never executed; @INC probing is monkeypatched where needed.

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from routes.pod import PodPlugin
from services.settings import PodSettings

FOO_PM = """package Foo;
use strict;

=head1 NAME

Foo - top level module

=head1 SYNOPSIS

  use Foo;
  my $f = Foo->new;

=cut

sub new { bless {}, shift }

1;
"""

BAR_PM = """package Foo::Bar;

=head1 NAME

Foo::Bar - module flavour

=cut

1;
"""

BAR_POD = """=head1 NAME

Foo::Bar - documented in a .pod file

=head1 DESCRIPTION

See L<Foo> and B<bold> words.

  print "first";

Text between.

  print "second";

=cut
"""

BAZ_PM = """package Foo::Baz;

=pod

Baz docs.

=cut

1;
"""

WIDGET_PM = """package Acme::Widget;

=head1 NAME

Acme::Widget - widgets

=cut

1;
"""

NO_POD_PM = """package NoPod;
sub x { 1 }
1;
"""

TOOL_PL = """#!/usr/bin/perl

=head1 NAME

tool - a script

=cut

print "hi\\n";
"""


def write(root, rel, text):
    path = root.joinpath(*rel.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def perl_lib(tmp_path):
    lib = tmp_path / "lib"
    write(lib, "Foo.pm", FOO_PM)
    write(lib, "Foo/Bar.pm", BAR_PM)
    write(lib, "Foo/Bar.pod", BAR_POD)
    write(lib, "Foo/Baz.pm", BAZ_PM)
    write(lib, "Acme/Widget.pm", WIDGET_PM)
    write(lib, "NoPod.pm", NO_POD_PM)
    write(lib, "2Fast.pm", WIDGET_PM)
    write(lib, ".hidden/Secret.pm", WIDGET_PM)
    write(lib, "CVS/Junk.pm", WIDGET_PM)
    write(lib, "tool.pl", TOOL_PL)
    write(lib, "README.txt", "=head1 not pod extension\n")
    return lib


@pytest.fixture
def settings(perl_lib):
    return PodSettings.build(paths=(str(perl_lib),))


@pytest.fixture
def make_client():
    """Build a TestClient for a given PodSettings (and optional index)."""
    def _make(settings, index=None):
        plugin = PodPlugin(settings, index=index)
        app = FastAPI()
        app.state.pod = plugin
        app.include_router(plugin.router)
        return TestClient(app)
    return _make


@pytest.fixture
def client(settings, make_client):
    return make_client(settings)
