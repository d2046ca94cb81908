# -- Scenes Package -- #

'''
Scene configuration: simulation domain, fill volumes and settings.
'''

from sphFluid.scenes.sceneConfig import SceneConfig
