from __future__ import annotations

from pathlib import Path

import pytest

APPHOST = """<?xml version="1.0" encoding="UTF-8"?>
<configuration>
  <!-- sitio por defecto -->
  <location path="Default Web Site/OWA">
    <system.webServer>
      <security>
        <authentication>
          <windowsAuthentication enabled="true">
            <extendedProtection tokenChecking="None" />
          </windowsAuthentication>
        </authentication>
      </security>
    </system.webServer>
  </location>
  <location path="Default Web Site/ECP">
    <system.webServer>
      <security>
        <authentication>
          <windowsAuthentication enabled="true">
            <extendedProtection tokenChecking="Allow" />
          </windowsAuthentication>
        </authentication>
      </security>
    </system.webServer>
  </location>
  <location path="Exchange Back End/EWS">
    <system.webServer />
  </location>
</configuration>
"""


@pytest.fixture
def apphost(tmp_path: Path) -> Path:
    path = tmp_path / "applicationHost.config"
    path.write_text(APPHOST, encoding="utf-8")
    return path
