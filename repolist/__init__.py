"""
REPOLIST
~~~~~~~~~~~~~~~~~~~~~

Sample application wired with wirescope: an application scope holding the
http client, a user scope holding the GitHub REST interface, and a screen
injected from the user scope that loads a user's repositories.

>>> with RepoListApplication(AppConfig()) as app:
...     screen = app.inject(MainScreen())
"""

from .app import MainScreen as MainScreen
from .app import RepoListApplication as RepoListApplication
from .config import AppConfig as AppConfig
from .config import PreferenceStore as PreferenceStore
from .httpclient import HttpCache as HttpCache
from .httpclient import HttpClient as HttpClient
from .models import Err as Err
from .models import HttpError as HttpError
from .models import Ok as Ok
from .models import Repository as Repository
from .models import Result as Result
from .service import GithubService as GithubService
